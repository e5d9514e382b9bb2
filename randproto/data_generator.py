# kate: replace-tabs on; indent-width 4;

"""
Random protobuf message generator.

This module generates completely random but structurally valid message
data from a message descriptor. Every field that is not part of a oneof is
filled, exactly one member of each oneof group is filled, and repeated
fields get a fixed number of independently generated elements.

Leaf values are made of random bytes reinterpreted as the field's type,
so they cover the whole value range of the type rather than "nice" values.

Example usage:
    generator = DataGenerator(GeneratorConfig(repeat_count=3))
    data = generator.generate(my_pb2.MyMessage)

    # or, with the default generator
    data = generate(my_pb2.MyMessage.DESCRIPTOR)
"""

import logging
import string
import struct
from typing import Any, Dict, List, Optional, Tuple

from .config import GeneratorConfig
from .descriptor_model import FieldInfo, MessageInfo, WireKind, as_message_info
from .errors import CyclicDescriptorError, MalformedDescriptorError
from .random_source import RandomSource, SystemRandomSource

logger = logging.getLogger(__name__)

# struct format applied to the 8 random bytes drawn for each number.
# 64-bit integer kinds have a second, 32-bit format used when
# GeneratorConfig.wide_integers is off.
NUMBER_FORMATS: Dict[WireKind, Tuple[str, str]] = {
    WireKind.DOUBLE: ('<d', '<d'),
    WireKind.FLOAT: ('<f', '<f'),
    WireKind.INT32: ('<i', '<i'),
    WireKind.INT64: ('<q', '<i'),
    WireKind.UINT32: ('<I', '<I'),
    WireKind.UINT64: ('<Q', '<I'),
    WireKind.SINT32: ('<i', '<i'),
    WireKind.SINT64: ('<q', '<i'),
    WireKind.FIXED32: ('<I', '<I'),
    WireKind.FIXED64: ('<Q', '<I'),
    WireKind.SFIXED32: ('<i', '<i'),
    WireKind.SFIXED64: ('<q', '<i'),
}

STRING_ALPHABET = string.printable

# Unicode scalar values: every code point except the UTF-16 surrogates
MAX_CODE_POINT = 0x10FFFF
SURROGATE_START = 0xD800
SURROGATE_COUNT = 0x800


class DataGenerator:
    """Generates random data for protobuf messages."""

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 source: Optional[RandomSource] = None):
        """
        Initialize data generator.

        Args:
            config: Repetition count, length bounds and recursion limit.
                    Defaults to GeneratorConfig.from_env().
            source: Source of random bytes. Pass a SeededRandomSource for
                    reproducible output. Defaults to OS entropy.
        """
        self.config = config if config is not None else GeneratorConfig.from_env()
        self.source = source if source is not None else SystemRandomSource()

    def generate(self, message_type: Any) -> Dict[str, Any]:
        """
        Generate a random message.

        Args:
            message_type: A MessageInfo, a protobuf Descriptor, or a
                          generated message class/instance.

        Returns:
            Dictionary of field values
        """
        return self._generate_message(as_message_info(message_type), [])

    def _generate_message(self, message: MessageInfo, path: List[str]) -> Dict[str, Any]:
        path = path + [message.full_name]
        if len(path) > self.config.max_depth:
            raise CyclicDescriptorError(path, self.config.max_depth)

        data = self._resolve_oneofs(message, path)

        for field_info in message.plain_fields():
            data[field_info.name] = self._generate_field(field_info, path)

        return data

    def resolve_oneofs(self, message_type: Any) -> Dict[str, Any]:
        """
        Return a partial message containing exactly one field of each oneof.

        Fields that were not picked from their group are absent.
        """
        message = as_message_info(message_type)
        return self._resolve_oneofs(message, [message.full_name])

    def _resolve_oneofs(self, message: MessageInfo, path: List[str]) -> Dict[str, Any]:
        data = {}
        for oneof_name, members in message.oneof_groups().items():
            index = self.source.randint(0, len(members) - 1)
            selected = members[index]
            logger.debug("%s: oneof %s -> %s", message.full_name, oneof_name, selected.name)
            data[selected.name] = self._generate_field(selected, path)
        return data

    def generate_field(self, field_info: FieldInfo) -> Any:
        """Generate a random value for one field (a list if it is repeated)."""
        return self._generate_field(field_info, [])

    def _generate_field(self, field_info: FieldInfo, path: List[str]) -> Any:
        if field_info.repeated:
            # Each element is drawn independently
            return [self._generate_single(field_info, path)
                    for _ in range(self.config.repeat_count)]
        return self._generate_single(field_info, path)

    def _generate_single(self, field_info: FieldInfo, path: List[str]) -> Any:
        kind = field_info.kind

        if kind == WireKind.MESSAGE:
            if field_info.message_type is None:
                raise MalformedDescriptorError(
                    f"Message field {field_info.name} has no resolved message type"
                )
            return self._generate_message(field_info.message_type, path)
        elif kind == WireKind.ENUM:
            return self.generate_enum(field_info)
        elif kind == WireKind.BYTES:
            return self.generate_bytes()
        elif kind == WireKind.STRING:
            return self.generate_string()
        elif kind == WireKind.BOOL:
            return self.generate_bool()
        else:
            return self.generate_scalar(field_info)

    def generate_scalar(self, field_info: FieldInfo) -> Any:
        """Return a number composed of random bytes."""
        buf = self.source.randbytes(8)

        formats = NUMBER_FORMATS.get(field_info.kind)
        if formats is None:
            logger.warning("Unknown number type %s for field %s, generating a double",
                           field_info.type_name, field_info.name)
            return struct.unpack('<d', buf)[0]

        fmt = formats[0] if self.config.wide_integers else formats[1]
        return struct.unpack_from(fmt, buf)[0]

    def generate_bytes(self) -> bytes:
        """Return a random number of random bytes, up to max_bytes_length."""
        size = self.source.randint(0, self.config.max_bytes_length)
        return self.source.randbytes(size)

    def generate_enum(self, field_info: FieldInfo) -> int:
        """
        Return a random enum value index for this field.

        Values are assumed to be numbered contiguously from zero. For enums
        with gaps, the index still selects a declared value: encode_to_binary
        writes the number declared at that position.
        """
        enum_type = field_info.enum_type
        if enum_type is None:
            raise MalformedDescriptorError(
                f"Enum field {field_info.name} has no resolved enum type"
            )
        if enum_type.size == 0:
            raise MalformedDescriptorError(
                f"Enum {enum_type.name} used by field {field_info.name} has no values"
            )
        return self.source.randint(0, enum_type.size - 1)

    def generate_string(self) -> str:
        """
        Return a random string, up to max_string_length characters.

        Each character is, with equal odds, printable ASCII or any Unicode
        scalar value, so the UTF-8 encoding mixes one to four byte sequences.
        """
        length = self.source.randint(0, self.config.max_string_length)
        return ''.join(self._generate_char() for _ in range(length))

    def _generate_char(self) -> str:
        if self.source.randint(0, 1) == 0:
            return STRING_ALPHABET[self.source.randint(0, len(STRING_ALPHABET) - 1)]
        code = self.source.randint(0, MAX_CODE_POINT - SURROGATE_COUNT)
        if code >= SURROGATE_START:
            code += SURROGATE_COUNT
        return chr(code)

    def generate_bool(self) -> bool:
        return self.source.randint(0, 1) == 1


def generate(message_type: Any, config: Optional[GeneratorConfig] = None,
             source: Optional[RandomSource] = None) -> Dict[str, Any]:
    """
    Generate a random message matching the given message type.

    Shorthand for DataGenerator(config, source).generate(message_type).
    """
    return DataGenerator(config, source).generate(message_type)
