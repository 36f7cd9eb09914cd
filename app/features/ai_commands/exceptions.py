"""
Errors raised while resolving and executing natural-language RBAC commands.

The executor turns every CommandError into a failure outcome, so none of these
reach the HTTP layer as raw exceptions.
"""
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    ALREADY_IN_DESIRED_STATE = "already_in_desired_state"
    LOW_CONFIDENCE = "low_confidence"
    CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
    INTERNAL = "internal"


class CommandError(Exception):
    """
    Base error for the command pipeline.

    Attributes:
        message: Human-readable description shown to the operator
        error_kind: Machine-readable kind
        suggestions: Follow-up commands the operator could try
        details: Extra context (entity names, ids)
    """
    error_kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        suggestions: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.suggestions = list(suggestions or [])
        self.details = details or {}
        super().__init__(message)


class ValidationError(CommandError):
    """A well-formed intent is missing an entity name it requires."""
    error_kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None, suggestions: list[str] | None = None) -> None:
        super().__init__(message, suggestions, {"field": field} if field else {})


class NotFoundError(CommandError):
    """A referenced role, permission or assignment does not exist."""
    error_kind = ErrorKind.NOT_FOUND

    def __init__(self, resource_type: str, name: str, suggestions: list[str] | None = None) -> None:
        super().__init__(
            f'{resource_type.capitalize()} "{name}" not found',
            suggestions,
            {"resource_type": resource_type, "name": name},
        )


class ConflictError(CommandError):
    """A unique name or unique assignment would be violated."""
    error_kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Item already exists", suggestions: list[str] | None = None) -> None:
        super().__init__(message, suggestions)


class AlreadyInDesiredStateError(CommandError):
    """Assign when already assigned, or remove when not assigned."""
    error_kind = ErrorKind.ALREADY_IN_DESIRED_STATE


class LowConfidenceError(CommandError):
    """The intent was not understood well enough to act on."""
    error_kind = ErrorKind.LOW_CONFIDENCE


class ClassifierUnavailableError(CommandError):
    """
    The language model could not be reached or replied with something unusable.

    Only raised inside the classifier and splitter, which fall back to the
    deterministic parsers instead of propagating it.
    """
    error_kind = ErrorKind.CLASSIFIER_UNAVAILABLE
