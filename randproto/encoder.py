# kate: replace-tabs on; indent-width 4;

"""
Protobuf wire format encoding of generated message data.

The generator produces plain dictionaries; this module turns them into
bytes that any protobuf runtime can parse, and formats the bytes for
inclusion in test fixtures.
"""

import logging
import struct
from enum import Enum
from typing import Any, Dict, Union

from .descriptor_model import FieldInfo, WireKind, as_message_info
from .errors import MalformedDescriptorError

logger = logging.getLogger(__name__)

# Wire types: 0=varint, 1=64bit, 2=length-delimited, 3/4=group start/end, 5=32bit
WIRE_VARINT = 0
WIRE_64BIT = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_32BIT = 5

VARINT_KINDS = frozenset([
    WireKind.INT32, WireKind.INT64, WireKind.UINT32, WireKind.UINT64,
    WireKind.BOOL, WireKind.ENUM,
])

FIXED_FORMATS = {
    WireKind.DOUBLE: (WIRE_64BIT, '<d'),
    WireKind.FLOAT: (WIRE_32BIT, '<f'),
    WireKind.FIXED32: (WIRE_32BIT, '<I'),
    WireKind.SFIXED32: (WIRE_32BIT, '<i'),
    WireKind.FIXED64: (WIRE_64BIT, '<Q'),
    WireKind.SFIXED64: (WIRE_64BIT, '<q'),
}


class OutputFormat(Enum):
    """Output format for encoded data."""
    BINARY = "binary"
    C_ARRAY = "c_array"
    HEX_STRING = "hex_string"


def encode_to_binary(message_type: Any, data: Dict[str, Any]) -> bytes:
    """
    Encode data dictionary to protobuf binary format.

    Args:
        message_type: Anything accepted by as_message_info()
        data: Dictionary of field values, as returned by DataGenerator.
              Enum values are value indexes, as produced by
              DataGenerator.generate_enum; the declared number at that
              index is what gets written, so enums with gaps in their
              numbering still encode to known values.

    Returns:
        Binary protobuf data
    """
    message = as_message_info(message_type)
    fields = message.fields_by_name
    output = bytearray()

    for field_name, value in data.items():
        if field_name not in fields:
            continue
        output.extend(_encode_field(fields[field_name], value))

    return bytes(output)


def _encode_field(field_info: FieldInfo, value: Any) -> bytes:
    """Encode a single field to protobuf wire format."""
    if field_info.number < 1:
        raise MalformedDescriptorError(
            f"Field {field_info.name} has invalid field number {field_info.number}"
        )

    if field_info.repeated:
        # Repeated scalars are written unpacked; parsers accept both forms
        return b''.join(_encode_single_field(field_info, item) for item in value)
    return _encode_single_field(field_info, value)


def _encode_single_field(field_info: FieldInfo, value: Any) -> bytes:
    """Encode a single field value to protobuf wire format."""
    kind = field_info.kind
    number = field_info.number

    if kind == WireKind.ENUM:
        return _encode_key(number, WIRE_VARINT) + _encode_varint(_enum_number(field_info, value))

    elif kind in VARINT_KINDS:
        return _encode_key(number, WIRE_VARINT) + _encode_varint(int(value))

    elif kind in (WireKind.SINT32, WireKind.SINT64):
        # ZigZag encoding
        bits = 31 if kind == WireKind.SINT32 else 63
        encoded = (value << 1) ^ (value >> bits)
        return _encode_key(number, WIRE_VARINT) + _encode_varint(encoded)

    elif kind in FIXED_FORMATS:
        wire_type, fmt = FIXED_FORMATS[kind]
        return _encode_key(number, wire_type) + struct.pack(fmt, value)

    elif kind == WireKind.MESSAGE and field_info.is_group:
        # Groups are framed by start/end keys instead of a length prefix
        return (_encode_key(number, WIRE_START_GROUP) +
                encode_to_binary(_message_type(field_info), value) +
                _encode_key(number, WIRE_END_GROUP))

    elif kind in (WireKind.STRING, WireKind.BYTES, WireKind.MESSAGE):
        if kind == WireKind.STRING:
            value_bytes = value.encode('utf-8')
        elif kind == WireKind.BYTES:
            value_bytes = value
        else:
            value_bytes = encode_to_binary(_message_type(field_info), value)

        return (_encode_key(number, WIRE_LENGTH_DELIMITED) +
                _encode_varint(len(value_bytes)) +
                value_bytes)

    logger.warning("Cannot encode field %s of type %s, skipping",
                   field_info.name, field_info.type_name)
    return b''


def _message_type(field_info: FieldInfo):
    if field_info.message_type is None:
        raise MalformedDescriptorError(
            f"Message field {field_info.name} has no resolved message type"
        )
    return field_info.message_type


def _enum_number(field_info: FieldInfo, index: int) -> int:
    """Map an enum value index to the number declared at that index."""
    enum_type = field_info.enum_type
    if enum_type is None or not 0 <= index < enum_type.size:
        return int(index)
    return list(enum_type.values.values())[index]


def _encode_key(field_number: int, wire_type: int) -> bytes:
    return _encode_varint((field_number << 3) | wire_type)


def _encode_varint(value: int) -> bytes:
    """Encode an integer as a varint."""
    if value < 0:
        value += (1 << 64)

    result = bytearray()
    while value > 0x7f:
        result.append((value & 0x7f) | 0x80)
        value >>= 7
    result.append(value & 0x7f)
    return bytes(result)


def format_output(
    data: bytes,
    format_type: OutputFormat = OutputFormat.C_ARRAY,
    name: str = "test_data"
) -> Union[bytes, str]:
    """
    Format binary data for output.

    Args:
        data: Binary protobuf data
        format_type: Desired output format
        name: Variable name for C arrays

    Returns:
        The bytes unchanged for BINARY, otherwise a string
    """
    if format_type == OutputFormat.BINARY:
        return data

    elif format_type == OutputFormat.HEX_STRING:
        return data.hex()

    hex_values = ', '.join(f'0x{b:02x}' for b in data)
    return f'const uint8_t {name}[] = {{{hex_values}}};\nconst size_t {name}_size = {len(data)};'
