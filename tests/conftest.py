"""
Pytest configuration and shared fixtures for randproto tests.

Test message types are declared directly as descriptor_pb2 objects and
loaded into a private DescriptorPool, so no protoc is needed to run the
suite. The equivalent .proto source is:

    syntax = "proto3";
    package randproto.test;

    enum Named { RED = 0; GREEN = 1; BLUE = 2; CYAN = 3; MAGENTA = 4; }

    message Color {
        oneof spec { bytes rgbHex = 1; Named named = 2; int32 index = 3; }
        repeated int32 tags = 4;
    }
    message Scalars { double d = 1; float f = 2; ... bytes blob = 15; }
    message Inner { int32 value = 1; string name = 2; }
    message Middle { Inner inner = 1; uint32 count = 2; }
    message Outer { Middle middle = 1; repeated Inner items = 2; int64 id = 3; }
    message Choices {
        oneof first { int32 a = 1; string b = 2; }
        oneof second { bool c = 3; Inner d = 4; double e = 5; }
        int32 z = 6;
        oneof solo { int32 only = 7; }
    }
    message Node { int32 value = 1; Node child = 2; }
    message WithOptional { optional int32 maybe = 1; string label = 2; }

A second, proto2 file covers groups and enums with gaps in their numbering:

    syntax = "proto2";
    package randproto.test;

    enum Sparse { A = 0; B = 5; C = 9; }

    message Grouped {
        optional group Grp = 1 { optional int32 x = 2; optional string y = 3; }
        optional int32 after = 4;
        optional Sparse sparse = 5;
    }
"""

from typing import Callable, List, Optional

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory

from randproto import DataGenerator, GeneratorConfig, MessageInfo, SeededRandomSource
from randproto.random_source import RandomSource


# =============================================================================
# Test Schema
# =============================================================================

PACKAGE = 'randproto.test'

FDP = descriptor_pb2.FieldDescriptorProto

SCALAR_FIELDS = [
    ('d', FDP.TYPE_DOUBLE), ('f', FDP.TYPE_FLOAT),
    ('i32', FDP.TYPE_INT32), ('i64', FDP.TYPE_INT64),
    ('u32', FDP.TYPE_UINT32), ('u64', FDP.TYPE_UINT64),
    ('s32', FDP.TYPE_SINT32), ('s64', FDP.TYPE_SINT64),
    ('f32', FDP.TYPE_FIXED32), ('f64', FDP.TYPE_FIXED64),
    ('sf32', FDP.TYPE_SFIXED32), ('sf64', FDP.TYPE_SFIXED64),
    ('flag', FDP.TYPE_BOOL), ('text', FDP.TYPE_STRING), ('blob', FDP.TYPE_BYTES),
]

COLOR_NAMES = ['RED', 'GREEN', 'BLUE', 'CYAN', 'MAGENTA']
SPARSE_VALUES = [('A', 0), ('B', 5), ('C', 9)]


def add_field(msg, name, number, field_type, repeated=False, type_name=None,
              oneof_index=None, proto3_optional=False):
    """Append a field to a DescriptorProto."""
    field = msg.field.add(
        name=name,
        number=number,
        type=field_type,
        label=FDP.LABEL_REPEATED if repeated else FDP.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = f'.{PACKAGE}.{type_name}'
    if oneof_index is not None:
        field.oneof_index = oneof_index
    if proto3_optional:
        field.proto3_optional = True
    return field


def build_test_file() -> descriptor_pb2.FileDescriptorProto:
    """Build the FileDescriptorProto for the schema in the module docstring."""
    fdesc = descriptor_pb2.FileDescriptorProto(
        name='randproto_test.proto', package=PACKAGE, syntax='proto3')

    named = fdesc.enum_type.add(name='Named')
    for number, name in enumerate(COLOR_NAMES):
        named.value.add(name=name, number=number)

    color = fdesc.message_type.add(name='Color')
    color.oneof_decl.add(name='spec')
    add_field(color, 'rgbHex', 1, FDP.TYPE_BYTES, oneof_index=0)
    add_field(color, 'named', 2, FDP.TYPE_ENUM, type_name='Named', oneof_index=0)
    add_field(color, 'index', 3, FDP.TYPE_INT32, oneof_index=0)
    add_field(color, 'tags', 4, FDP.TYPE_INT32, repeated=True)

    scalars = fdesc.message_type.add(name='Scalars')
    for number, (name, field_type) in enumerate(SCALAR_FIELDS, start=1):
        add_field(scalars, name, number, field_type)

    inner = fdesc.message_type.add(name='Inner')
    add_field(inner, 'value', 1, FDP.TYPE_INT32)
    add_field(inner, 'name', 2, FDP.TYPE_STRING)

    middle = fdesc.message_type.add(name='Middle')
    add_field(middle, 'inner', 1, FDP.TYPE_MESSAGE, type_name='Inner')
    add_field(middle, 'count', 2, FDP.TYPE_UINT32)

    outer = fdesc.message_type.add(name='Outer')
    add_field(outer, 'middle', 1, FDP.TYPE_MESSAGE, type_name='Middle')
    add_field(outer, 'items', 2, FDP.TYPE_MESSAGE, repeated=True, type_name='Inner')
    add_field(outer, 'id', 3, FDP.TYPE_INT64)

    choices = fdesc.message_type.add(name='Choices')
    choices.oneof_decl.add(name='first')
    choices.oneof_decl.add(name='second')
    choices.oneof_decl.add(name='solo')
    add_field(choices, 'a', 1, FDP.TYPE_INT32, oneof_index=0)
    add_field(choices, 'b', 2, FDP.TYPE_STRING, oneof_index=0)
    add_field(choices, 'c', 3, FDP.TYPE_BOOL, oneof_index=1)
    add_field(choices, 'd', 4, FDP.TYPE_MESSAGE, type_name='Inner', oneof_index=1)
    add_field(choices, 'e', 5, FDP.TYPE_DOUBLE, oneof_index=1)
    add_field(choices, 'z', 6, FDP.TYPE_INT32)
    add_field(choices, 'only', 7, FDP.TYPE_INT32, oneof_index=2)

    node = fdesc.message_type.add(name='Node')
    add_field(node, 'value', 1, FDP.TYPE_INT32)
    add_field(node, 'child', 2, FDP.TYPE_MESSAGE, type_name='Node')

    with_optional = fdesc.message_type.add(name='WithOptional')
    with_optional.oneof_decl.add(name='_maybe')
    add_field(with_optional, 'maybe', 1, FDP.TYPE_INT32, oneof_index=0, proto3_optional=True)
    add_field(with_optional, 'label', 2, FDP.TYPE_STRING)

    return fdesc


def build_group_file() -> descriptor_pb2.FileDescriptorProto:
    """Build the proto2 FileDescriptorProto with the Grouped message."""
    fdesc = descriptor_pb2.FileDescriptorProto(
        name='randproto_group_test.proto', package=PACKAGE, syntax='proto2')

    sparse = fdesc.enum_type.add(name='Sparse')
    for name, number in SPARSE_VALUES:
        sparse.value.add(name=name, number=number)

    grouped = fdesc.message_type.add(name='Grouped')
    grp = grouped.nested_type.add(name='Grp')
    add_field(grp, 'x', 2, FDP.TYPE_INT32)
    add_field(grp, 'y', 3, FDP.TYPE_STRING)
    add_field(grouped, 'grp', 1, FDP.TYPE_GROUP, type_name='Grouped.Grp')
    add_field(grouped, 'after', 4, FDP.TYPE_INT32)
    add_field(grouped, 'sparse', 5, FDP.TYPE_ENUM, type_name='Sparse')

    return fdesc


# =============================================================================
# Random Sources
# =============================================================================

class FixedRandomSource(RandomSource):
    """Always picks the same end of every range; bytes are all `fill`."""

    def __init__(self, pick_high: bool = False, fill: int = 0):
        self.pick_high = pick_high
        self.fill = fill

    def randbytes(self, n: int) -> bytes:
        return bytes([self.fill]) * n

    def randint(self, low: int, high: int) -> int:
        return high if self.pick_high else low


class RecordingRandomSource(SeededRandomSource):
    """Seeded source that remembers every request it served."""

    def __init__(self, seed: Optional[int] = None, max_real_bytes: Optional[int] = None):
        super().__init__(seed)
        self.max_real_bytes = max_real_bytes
        self.randint_calls: List[tuple] = []
        self.randbytes_calls: List[int] = []

    def randbytes(self, n: int) -> bytes:
        self.randbytes_calls.append(n)
        if self.max_real_bytes is not None:
            n = min(n, self.max_real_bytes)
        return super().randbytes(n)

    def randint(self, low: int, high: int) -> int:
        value = super().randint(low, high)
        self.randint_calls.append((low, high, value))
        return value


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def test_file() -> descriptor_pb2.FileDescriptorProto:
    """The test schema as a FileDescriptorProto."""
    return build_test_file()


@pytest.fixture(scope="session")
def pool(test_file) -> descriptor_pool.DescriptorPool:
    """A private descriptor pool holding both test schema files."""
    test_pool = descriptor_pool.DescriptorPool()
    test_pool.AddSerializedFile(test_file.SerializeToString())
    test_pool.AddSerializedFile(build_group_file().SerializeToString())
    return test_pool


@pytest.fixture(scope="session")
def descriptor(pool) -> Callable:
    """Look up a protobuf Descriptor of the test schema by short name."""
    def find(name: str):
        return pool.FindMessageTypeByName(f'{PACKAGE}.{name}')
    return find


@pytest.fixture(scope="session")
def message_info(descriptor) -> Callable:
    """Look up a MessageInfo of the test schema by short name."""
    def find(name: str) -> MessageInfo:
        return MessageInfo.from_descriptor(descriptor(name))
    return find


@pytest.fixture(scope="session")
def message_class(descriptor) -> Callable:
    """Look up a concrete protobuf message class by short name."""
    def find(name: str):
        return message_factory.GetMessageClass(descriptor(name))
    return find


@pytest.fixture
def small_config() -> GeneratorConfig:
    """Config with small bytes fields so many trials stay fast."""
    return GeneratorConfig(repeat_count=4, max_bytes_length=32, max_string_length=16)


@pytest.fixture
def seeded_generator(small_config) -> DataGenerator:
    return DataGenerator(small_config, SeededRandomSource(1234))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "statistical: marks tests that check random distributions over many trials"
    )
    config.addinivalue_line(
        "markers", "encoding: marks tests related to wire encoding"
    )
