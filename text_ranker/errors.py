"""Exception types raised inside the ranking engine.

Only ``ConfigError`` is expected to reach callers. The others are caught
at the component boundary and turned into a logged fallback.
"""


class TextRankerError(Exception):
    """Base class for all engine errors."""


class DimensionMismatch(TextRankerError):
    """Two embedding vectors have different lengths."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vector dimensions differ: {left} != {right}")


class ConfigError(TextRankerError, ValueError):
    """An option is missing, unknown or out of range."""


class StageError(TextRankerError):
    """A pipeline stage produced no usable result."""
