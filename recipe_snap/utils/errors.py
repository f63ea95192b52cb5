"""Error taxonomy for the recipe generation pipeline.

- ValidationError: bad caller input, caught before any model call.
- InvalidInputError: a gateway operation was called outside its input contract.
- InferenceError: the model or transport failed, or returned a schema-invalid payload.
- StaleResultError: a result arrived for an input that is no longer current.
  Internal only; the pipeline discards the result silently.
"""

from typing import Optional


class RecipeSnapError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(RecipeSnapError):
    """Caller input rejected by a stage validator.

    Carries the name of the offending field so the UI can show a
    field-level message.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidInputError(ValidationError):
    """Gateway operation received input it cannot accept (e.g. no ingredients)."""


class InferenceError(RecipeSnapError):
    """Model call failed or produced output that does not match its schema."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


class StaleResultError(RecipeSnapError):
    """Result belongs to an input that has since been replaced."""
