"""Exceptions raised while synthesizing random messages."""


class RandProtoError(Exception):
    """Base class for all randproto errors."""


class MalformedDescriptorError(RandProtoError, ValueError):
    """A descriptor is missing information needed to synthesize a value.

    Raised for message fields without a resolved message type, enum fields
    without an enum type or with no values, and unknown message names.
    """


class CyclicDescriptorError(RandProtoError, RecursionError):
    """Nested message synthesis went deeper than the configured ceiling."""

    def __init__(self, path, max_depth: int):
        self.path = list(path)
        self.max_depth = max_depth
        super().__init__(
            f"Message nesting exceeded max_depth={max_depth}: "
            f"{' -> '.join(self.path)}"
        )
