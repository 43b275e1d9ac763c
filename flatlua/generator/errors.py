"""Exceptions raised while reading schemas and generating code."""


class ValidationError(RuntimeError):
    """Raised when a schema is rejected by the front end."""


class GeneratorError(RuntimeError):
    """Raised when code generation cannot proceed."""


class UnsupportedShapeError(GeneratorError):
    """Raised for a field shape the generator deliberately does not support."""

    def __init__(self, owner: str, field: str, shape: str):
        super().__init__(f"{owner}.{field}: {shape} is not supported")
        self.owner = owner
        self.field = field
        self.shape = shape


class SlotLayoutError(GeneratorError):
    """Raised when table builder slots do not match the declared field count."""
