"""
Engine Errors

Every failure the engine reports derives from EngineError so callers can
catch the whole family in one place:

- InitializationError: building the vocabulary or parameters failed, or the
  engine was initialized twice
- UninitializedModel: forward/generate called before parameters exist
- InvalidArgument: bad temperature, malformed configuration, wrong shapes
- EmptyInput: a forward pass was asked to run on zero tokens
"""


class EngineError(Exception):
    """Base class for all engine errors."""


class InitializationError(EngineError):
    """Engine setup failed. The instance is unusable."""


class UninitializedModel(EngineError):
    """The model was used before its parameters were attached."""


class InvalidArgument(EngineError, ValueError):
    """An argument or configuration value is out of range."""


class EmptyInput(EngineError, ValueError):
    """A forward pass received an empty token sequence."""
