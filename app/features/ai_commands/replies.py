"""
Parsing of structured (JSON) replies from the language model.

Replies are expected to hold a single JSON value, optionally wrapped in a
fenced code block. Anything else is a classifier failure.
"""
import json
import re
from typing import Any, Type, TypeVar
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.features.ai_commands.exceptions import ClassifierUnavailableError

T = TypeVar("T")

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    match = _FENCE.search(text)
    return (match.group(1) if match else text).strip()


def parse_structured_reply(text: Any, shape: Type[T]) -> T:
    """
    Validate a model reply against ``shape``.

    Args:
        text: Raw reply text
        shape: Pydantic model or any type TypeAdapter accepts (e.g. list[str])

    Returns:
        The validated object

    Raises:
        ClassifierUnavailableError: Reply is empty, not JSON, or has the wrong shape
    """
    if not isinstance(text, str) or not text.strip():
        raise ClassifierUnavailableError("Empty reply from language model")

    payload = strip_code_fence(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ClassifierUnavailableError(f"Reply is not valid JSON: {e.msg}")

    try:
        return TypeAdapter(shape).validate_python(data)
    except PydanticValidationError as e:
        raise ClassifierUnavailableError(f"Reply does not match expected shape: {e.error_count()} error(s)")
