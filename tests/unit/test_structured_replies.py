"""Tests for parse_structured_reply and the intent value objects it produces."""

from typing import List

import pytest

from app.features.ai_commands.exceptions import ClassifierUnavailableError, ErrorKind
from app.features.ai_commands.intents import (
    BatchOutcome,
    CommandAction,
    CommandIntent,
    CommandOutcome,
    SplitReply,
)
from app.features.ai_commands.replies import parse_structured_reply, strip_code_fence


def test_strip_code_fence_removes_json_fence() -> None:
    """Fenced replies are unwrapped; unfenced text is only trimmed."""
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_parse_fenced_intent() -> None:
    """A fenced CommandIntent reply validates into a typed object."""
    reply = (
        "Here you go:\n```json\n"
        '{"action": "assign_permission", "entities": {"roleName": "admin", '
        '"permissionName": "edit_posts", "description": null}, "confidence": 0.92, "suggestions": []}'
        "\n```"
    )
    intent = parse_structured_reply(reply, CommandIntent)
    assert intent.action == CommandAction.ASSIGN_PERMISSION
    assert intent.entities.roleName == "admin"
    assert intent.entities.permissionName == "edit_posts"
    assert intent.confidence == 0.92


def test_parse_intent_turns_null_strings_into_none() -> None:
    """Models that spell missing entities as "null" or "" yield None."""
    reply = (
        '{"action": "create_role", "entities": {"roleName": "moderator", '
        '"permissionName": "null", "description": ""}, "confidence": 0.9, "suggestions": null}'
    )
    intent = parse_structured_reply(reply, CommandIntent)
    assert intent.entities.permissionName is None
    assert intent.entities.description is None
    assert intent.suggestions == []


def test_parse_list_of_strings() -> None:
    """Any TypeAdapter-compatible shape is accepted."""
    assert parse_structured_reply('["a", "b"]', List[str]) == ["a", "b"]


@pytest.mark.parametrize(
    "reply",
    [
        "",
        "   ",
        None,
        "I could not parse that command",
        '{"action": "fly_to_the_moon", "confidence": 0.9}',
        '{"action": "list_roles"}',
        '{"action": "list_roles", "confidence": 1.7}',
    ],
)
def test_unusable_reply_is_classifier_failure(reply) -> None:
    """Empty, non-JSON and wrongly shaped replies raise ClassifierUnavailableError."""
    with pytest.raises(ClassifierUnavailableError) as exc_info:
        parse_structured_reply(reply, CommandIntent)
    assert exc_info.value.error_kind == ErrorKind.CLASSIFIER_UNAVAILABLE


def test_split_reply_drops_blank_commands() -> None:
    """Blank entries in a split reply are removed; all-blank is rejected."""
    reply = parse_structured_reply('{"isMultiCommand": true, "commands": ["create role a", " "]}', SplitReply)
    assert reply.commands == ["create role a"]
    with pytest.raises(ClassifierUnavailableError):
        parse_structured_reply('{"isMultiCommand": true, "commands": [""]}', SplitReply)


def test_unknown_intent_has_zero_confidence() -> None:
    """CommandIntent.unknown carries the given suggestions."""
    intent = CommandIntent.unknown(["Try: list all roles"])
    assert intent.action == CommandAction.UNKNOWN
    assert intent.confidence == 0.0
    assert intent.suggestions == ["Try: list all roles"]


def test_outcome_response_omits_empty_fields() -> None:
    """Single-command bodies only carry the fields that are set."""
    ok = CommandOutcome(success=True, command="list roles", message="Found 0 role(s)", data=[], confidence=0.9)
    assert ok.to_response() == {"success": True, "message": "Found 0 role(s)", "data": [], "confidence": 0.9}

    failed = CommandOutcome(
        success=False,
        command="do it",
        error="Could not understand the command",
        error_kind=ErrorKind.LOW_CONFIDENCE,
        suggestions=["Try: list all roles"],
    )
    assert failed.to_response() == {
        "success": False,
        "error": "Could not understand the command",
        "suggestions": ["Try: list all roles"],
    }


def test_batch_response_shape() -> None:
    """Batch bodies carry isMultiCommand and per-command results."""
    batch = BatchOutcome(
        success=False,
        message="1 of 2 commands succeeded",
        results=[
            CommandOutcome(success=True, command="create role a", message="ok", index=0),
            CommandOutcome(
                success=False, command="assign b c", error="nope", error_kind=ErrorKind.NOT_FOUND, index=1
            ),
        ],
    )
    body = batch.to_response()
    assert batch.succeeded == 1
    assert body["isMultiCommand"] is True
    assert body["results"][1]["error_kind"] == "not_found"
    assert body["results"][0]["index"] == 0
