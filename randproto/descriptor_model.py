# kate: replace-tabs on; indent-width 4;

"""
Read-only descriptor model consumed by the data generator.

The generator works on MessageInfo / FieldInfo / EnumInfo objects instead of
the protobuf runtime descriptors. They can be written by hand (handy in
tests) or adapted from:

- google.protobuf.descriptor.Descriptor objects
- generated message classes or instances (anything with a DESCRIPTOR)
- serialized FileDescriptorSet data, as written by
  `protoc --descriptor_set_out=out.pb --include_imports foo.proto`

Example usage:
    descriptors = load_descriptor_set('out.pb')
    color = descriptors.find_message('Color')
    for field in color.fields:
        print(field.name, field.kind)
"""

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf.descriptor import FieldDescriptor

from .errors import MalformedDescriptorError

logger = logging.getLogger(__name__)


class WireKind(Enum):
    """Encoding category of a field."""
    DOUBLE = 'double'
    FLOAT = 'float'
    INT32 = 'int32'
    INT64 = 'int64'
    UINT32 = 'uint32'
    UINT64 = 'uint64'
    SINT32 = 'sint32'
    SINT64 = 'sint64'
    FIXED32 = 'fixed32'
    FIXED64 = 'fixed64'
    SFIXED32 = 'sfixed32'
    SFIXED64 = 'sfixed64'
    BOOL = 'bool'
    STRING = 'string'
    BYTES = 'bytes'
    ENUM = 'enum'
    MESSAGE = 'message'
    # Type code not known to this version of the library
    UNKNOWN = 'unknown'

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_KINDS


NUMERIC_KINDS = frozenset([
    WireKind.DOUBLE, WireKind.FLOAT,
    WireKind.INT32, WireKind.INT64, WireKind.UINT32, WireKind.UINT64,
    WireKind.SINT32, WireKind.SINT64, WireKind.FIXED32, WireKind.FIXED64,
    WireKind.SFIXED32, WireKind.SFIXED64,
])

TYPE_GROUP = 10

# FieldDescriptorProto.Type numbers
TYPE_CODES = {
    1: WireKind.DOUBLE, 2: WireKind.FLOAT, 3: WireKind.INT64, 4: WireKind.UINT64,
    5: WireKind.INT32, 6: WireKind.FIXED64, 7: WireKind.FIXED32, 8: WireKind.BOOL,
    9: WireKind.STRING, 10: WireKind.MESSAGE, 11: WireKind.MESSAGE, 12: WireKind.BYTES,
    13: WireKind.UINT32, 14: WireKind.ENUM, 15: WireKind.SFIXED32, 16: WireKind.SFIXED64,
    17: WireKind.SINT32, 18: WireKind.SINT64,
}


def kind_from_type_code(type_code: int) -> WireKind:
    """Map a descriptor type number to a WireKind (UNKNOWN if unrecognized)."""
    return TYPE_CODES.get(type_code, WireKind.UNKNOWN)


@dataclass(frozen=True)
class EnumInfo:
    """Enum type: value names mapped to their numbers, in declaration order."""
    name: str
    values: Dict[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.values)

    @classmethod
    def from_descriptor(cls, enum_desc) -> 'EnumInfo':
        return cls(enum_desc.full_name,
                   OrderedDict((v.name, v.number) for v in enum_desc.values))


@dataclass(frozen=True, eq=False)
class FieldInfo:
    """One field of a message type."""
    name: str
    kind: WireKind
    repeated: bool = False
    oneof: Optional[str] = None
    message_type: Optional['MessageInfo'] = None
    enum_type: Optional[EnumInfo] = None
    number: int = 0
    type_code: Optional[int] = None

    @property
    def is_group(self) -> bool:
        """True for proto2 `group` fields, which are MESSAGE with start/end group framing."""
        return self.type_code == TYPE_GROUP

    @property
    def type_name(self) -> str:
        """Human readable type name, as it would appear in a .proto file."""
        if self.kind == WireKind.MESSAGE and self.message_type is not None:
            return self.message_type.full_name
        if self.kind == WireKind.ENUM and self.enum_type is not None:
            return self.enum_type.name
        if self.kind == WireKind.UNKNOWN:
            return f'unknown({self.type_code})'
        return self.kind.value


@dataclass(eq=False, repr=False)
class MessageInfo:
    """
    A message type: its fields in declaration order.

    Message types may refer to themselves through their fields, so equality
    is identity and the repr lists field names only.
    """
    name: str
    fields: List[FieldInfo] = field(default_factory=list)
    full_name: str = ''

    def __post_init__(self):
        if not self.full_name:
            self.full_name = self.name

    def __repr__(self):
        names = ', '.join(f.name for f in self.fields)
        return f"MessageInfo({self.full_name}: {names})"

    @property
    def fields_by_name(self) -> Dict[str, FieldInfo]:
        return OrderedDict((f.name, f) for f in self.fields)

    def oneof_groups(self) -> Dict[str, List[FieldInfo]]:
        """Group fields by oneof name, in order of first appearance."""
        groups = OrderedDict()
        for f in self.fields:
            if f.oneof is not None:
                groups.setdefault(f.oneof, []).append(f)
        return groups

    def plain_fields(self) -> List[FieldInfo]:
        """Fields that are not part of any oneof, in declaration order."""
        return [f for f in self.fields if f.oneof is None]

    @classmethod
    def from_descriptor(cls, descriptor, _memo: Optional[Dict[str, 'MessageInfo']] = None) -> 'MessageInfo':
        """
        Build a MessageInfo from a google.protobuf Descriptor.

        Recursive message types produce a cyclic MessageInfo graph rather
        than an infinite one: each full name is converted exactly once.
        """
        if _memo is None:
            _memo = {}
        if descriptor.full_name in _memo:
            return _memo[descriptor.full_name]

        info = cls(descriptor.name, full_name=descriptor.full_name)
        _memo[descriptor.full_name] = info

        enum_memo = {}
        for field_desc in descriptor.fields:
            kind = kind_from_type_code(field_desc.type)
            if kind == WireKind.UNKNOWN:
                logger.warning("Field %s.%s has unrecognized type code %s",
                               descriptor.full_name, field_desc.name, field_desc.type)

            message_type = None
            if kind == WireKind.MESSAGE and field_desc.message_type is not None:
                message_type = cls.from_descriptor(field_desc.message_type, _memo)

            enum_type = None
            if kind == WireKind.ENUM and field_desc.enum_type is not None:
                enum_name = field_desc.enum_type.full_name
                if enum_name not in enum_memo:
                    enum_memo[enum_name] = EnumInfo.from_descriptor(field_desc.enum_type)
                enum_type = enum_memo[enum_name]

            info.fields.append(FieldInfo(
                name=field_desc.name,
                kind=kind,
                repeated=_is_repeated(field_desc),
                oneof=_oneof_name(field_desc),
                message_type=message_type,
                enum_type=enum_type,
                number=field_desc.number,
                type_code=field_desc.type,
            ))

        return info


def _is_repeated(field_desc) -> bool:
    # Newer protobuf releases deprecate `label` in favor of `is_repeated`
    is_repeated = getattr(field_desc, 'is_repeated', None)
    if isinstance(is_repeated, bool):
        return is_repeated
    return field_desc.label == FieldDescriptor.LABEL_REPEATED


def _oneof_name(field_desc) -> Optional[str]:
    """Name of the field's oneof group, ignoring proto3 `optional` wrappers."""
    oneof = field_desc.containing_oneof
    if oneof is None:
        return None
    # proto3 `optional int32 x` lives in a synthetic oneof named `_x`
    if len(oneof.fields) == 1 and oneof.name == '_' + field_desc.name:
        return None
    return oneof.name


def as_message_info(obj: Any) -> MessageInfo:
    """Accept a MessageInfo, a Descriptor, or a message class/instance."""
    if isinstance(obj, MessageInfo):
        return obj
    if hasattr(obj, 'fields_by_name') and hasattr(obj, 'full_name'):
        return MessageInfo.from_descriptor(obj)
    if hasattr(obj, 'DESCRIPTOR'):
        return MessageInfo.from_descriptor(obj.DESCRIPTOR)
    raise TypeError(f"Cannot use {type(obj).__name__} as a message descriptor")


class DescriptorSet:
    """Message types loaded from a serialized FileDescriptorSet."""

    def __init__(self, file_set: descriptor_pb2.FileDescriptorSet):
        self.file_set = file_set
        self.pool = descriptor_pool.DescriptorPool()
        for fdesc in file_set.file:
            self.pool.AddSerializedFile(fdesc.SerializeToString())

    def get_messages(self) -> List[str]:
        """Get full names of all message types, nested ones included."""
        names = []

        def walk(prefix, message_types):
            for msg_desc in message_types:
                full_name = f'{prefix}.{msg_desc.name}' if prefix else msg_desc.name
                names.append(full_name)
                walk(full_name, msg_desc.nested_type)

        for fdesc in self.file_set.file:
            walk(fdesc.package, fdesc.message_type)
        return names

    def find_message(self, message_name: str) -> MessageInfo:
        """Look up a message by full name, or by short name if unambiguous."""
        full_name = message_name.lstrip('.')
        if full_name not in self.get_messages():
            candidates = [n for n in self.get_messages()
                          if n.rsplit('.', 1)[-1] == full_name]
            if len(candidates) != 1:
                raise MalformedDescriptorError(
                    f"Message {message_name} not found"
                    if not candidates else
                    f"Message {message_name} is ambiguous: {candidates}"
                )
            full_name = candidates[0]

        return MessageInfo.from_descriptor(self.pool.FindMessageTypeByName(full_name))


def load_descriptor_set(data: Union[bytes, str, os.PathLike]) -> DescriptorSet:
    """
    Load a FileDescriptorSet.

    Args:
        data: Serialized FileDescriptorSet bytes, or a path to a file
              containing them.
    """
    if not isinstance(data, (bytes, bytearray)):
        with open(data, 'rb') as f:
            data = f.read()

    file_set = descriptor_pb2.FileDescriptorSet()
    file_set.ParseFromString(bytes(data))
    logger.debug("Loaded descriptor set with %d files", len(file_set.file))
    return DescriptorSet(file_set)
