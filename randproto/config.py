"""
Generator configuration.

Defaults can be overridden per instance or through environment variables:

    RANDPROTO_REPEAT_COUNT   number of elements in every repeated field
    RANDPROTO_MAX_BYTES      upper bound (inclusive) of bytes field length
    RANDPROTO_MAX_STRING     upper bound (inclusive) of string field length
    RANDPROTO_MAX_DEPTH      maximum nesting of message fields
    RANDPROTO_WIDE_INTEGERS  0 or false to fill 64-bit integers from 32 random bits only
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

# Maximum recommended grpc message size is 1MB.
DEFAULT_MAX_BYTES_LENGTH = 1048575
DEFAULT_REPEAT_COUNT = 4
DEFAULT_MAX_STRING_LENGTH = 64
DEFAULT_MAX_DEPTH = 32

TRUE_STRINGS = frozenset(['1', 'true', 'yes', 'on'])
FALSE_STRINGS = frozenset(['0', 'false', 'no', 'off'])


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings shared by every synthesis call of a DataGenerator."""
    repeat_count: int = DEFAULT_REPEAT_COUNT
    max_bytes_length: int = DEFAULT_MAX_BYTES_LENGTH
    max_string_length: int = DEFAULT_MAX_STRING_LENGTH
    max_depth: int = DEFAULT_MAX_DEPTH
    wide_integers: bool = True

    def __post_init__(self):
        for name in ('repeat_count', 'max_bytes_length', 'max_string_length'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")

    @classmethod
    def from_env(cls, base: Optional['GeneratorConfig'] = None) -> 'GeneratorConfig':
        """Return a config with RANDPROTO_* environment overrides applied."""
        base = base or cls()
        overrides = {}

        env_ints = {
            'RANDPROTO_REPEAT_COUNT': 'repeat_count',
            'RANDPROTO_MAX_BYTES': 'max_bytes_length',
            'RANDPROTO_MAX_STRING': 'max_string_length',
            'RANDPROTO_MAX_DEPTH': 'max_depth',
        }
        for env_name, attr in env_ints.items():
            value = os.getenv(env_name)
            if value is not None:
                try:
                    overrides[attr] = int(value)
                except ValueError:
                    raise ValueError(f"{env_name} must be an integer, got {value!r}")

        wide = os.getenv('RANDPROTO_WIDE_INTEGERS')
        if wide is not None:
            flag = wide.strip().lower()
            if flag in TRUE_STRINGS:
                overrides['wide_integers'] = True
            elif flag in FALSE_STRINGS:
                overrides['wide_integers'] = False
            else:
                raise ValueError(f"RANDPROTO_WIDE_INTEGERS must be a boolean, got {wide!r}")

        return replace(base, **overrides)
