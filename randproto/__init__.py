'''Generate random, structurally valid protobuf messages for fuzz testing.'''

from .config import GeneratorConfig
from .data_generator import DataGenerator, generate
from .descriptor_model import (DescriptorSet, EnumInfo, FieldInfo, MessageInfo,
                               WireKind, as_message_info, load_descriptor_set)
from .encoder import OutputFormat, encode_to_binary, format_output
from .errors import CyclicDescriptorError, MalformedDescriptorError, RandProtoError
from .random_source import RandomSource, SeededRandomSource, SystemRandomSource

__version__ = '0.1.0'

__all__ = [
    'CyclicDescriptorError', 'DataGenerator', 'DescriptorSet', 'EnumInfo',
    'FieldInfo', 'GeneratorConfig', 'MalformedDescriptorError', 'MessageInfo',
    'OutputFormat', 'RandProtoError', 'RandomSource', 'SeededRandomSource',
    'SystemRandomSource', 'WireKind', 'as_message_info', 'encode_to_binary',
    'format_output', 'generate', 'load_descriptor_set',
]
