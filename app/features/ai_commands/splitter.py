"""
Splits a command holding several instructions into independent commands.
"""
import re
from typing import List

from app.features.ai_commands.classifier import IntentClassifier
from app.features.ai_commands.exceptions import ClassifierUnavailableError
from app.utils import get_logger


log = get_logger(__name__)


SEPARATORS = (" and ", " then ", ",", " also ", ";")

_SPLIT = re.compile(r"(\s*[,;]\s*|\s+(?:and\s+then|and\s+also|and|then|also)\s+|\s{2,})", re.IGNORECASE)

# A segment only starts a new command when it begins with one of these
_COMMAND_START = re.compile(
    r"^(?:(?:please|first|then|also|and|now|next|finally|lastly)\s+)*"
    r"(?:create|make|add|define|assign|give|grant|remove|revoke|take|unassign|withdraw|"
    r"list|show|display|view|get|describe|what|which)\b",
    re.IGNORECASE,
)


def might_be_multiple(command: str) -> bool:
    """Cheap check that decides whether asking the model to split is worth it."""
    lowered = command.lower()
    return "  " in command or any(sep in lowered for sep in SEPARATORS)


def fallback_split(command: str) -> List[str]:
    """
    Split on conjunctions and commas, keeping a piece attached to the previous
    one unless it starts with a command verb ("sales and marketing" stays whole).
    """
    segments: List[str] = []
    # split() keeps the separators at odd indexes
    parts = _SPLIT.split(command)
    for i in range(0, len(parts), 2):
        piece = parts[i].strip()
        if not piece:
            continue
        if segments and not _COMMAND_START.match(piece):
            segments[-1] = f"{segments[-1]}{parts[i - 1]}{piece}"
        else:
            segments.append(piece)
    return segments or [command]


class CommandSplitter:
    def __init__(self, classifier: IntentClassifier):
        self.classifier = classifier

    async def split(self, command: str) -> List[str]:
        command = command.strip()
        if not might_be_multiple(command):
            return [command]

        try:
            reply = await self.classifier.split_commands(command)
        except ClassifierUnavailableError as e:
            if self.classifier.available:
                log.warning(f"Semantic split failed, splitting on conjunctions: {e.message}")
            return fallback_split(command)

        if not reply.isMultiCommand:
            return [command]
        return reply.commands
