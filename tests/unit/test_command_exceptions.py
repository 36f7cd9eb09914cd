"""Tests for command pipeline exceptions (error_kind, message, suggestions, details)."""

from app.features.ai_commands.exceptions import (
    AlreadyInDesiredStateError,
    ClassifierUnavailableError,
    CommandError,
    ConflictError,
    ErrorKind,
    LowConfidenceError,
    NotFoundError,
    ValidationError,
)


def test_command_error_defaults() -> None:
    """Base CommandError is internal with no suggestions or details."""
    exc = CommandError("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_kind == ErrorKind.INTERNAL
    assert exc.suggestions == []
    assert exc.details == {}
    assert str(exc) == "Something failed"


def test_validation_error_records_field() -> None:
    """ValidationError puts the missing field in details."""
    exc = ValidationError("A role name is required", field="roleName")
    assert exc.error_kind == ErrorKind.VALIDATION
    assert exc.details == {"field": "roleName"}
    assert ValidationError("Invalid").details == {}


def test_not_found_error_message() -> None:
    """NotFoundError names the resource type and the missing name."""
    exc = NotFoundError("role", "ghost", ["Create it first"])
    assert exc.message == 'Role "ghost" not found'
    assert exc.error_kind == ErrorKind.NOT_FOUND
    assert exc.details == {"resource_type": "role", "name": "ghost"}
    assert exc.suggestions == ["Create it first"]


def test_conflict_error_default_message() -> None:
    """ConflictError defaults to the generic uniqueness message."""
    assert ConflictError().message == "Item already exists"
    assert ConflictError().error_kind == ErrorKind.CONFLICT


def test_remaining_error_kinds() -> None:
    """Each subclass carries its own kind."""
    assert AlreadyInDesiredStateError("x").error_kind == ErrorKind.ALREADY_IN_DESIRED_STATE
    assert LowConfidenceError("x").error_kind == ErrorKind.LOW_CONFIDENCE
    assert ClassifierUnavailableError("x").error_kind == ErrorKind.CLASSIFIER_UNAVAILABLE


def test_suggestions_are_copied() -> None:
    """Mutating the caller's list does not change the error."""
    suggestions = ["a"]
    exc = LowConfidenceError("x", suggestions)
    suggestions.append("b")
    assert exc.suggestions == ["a"]
