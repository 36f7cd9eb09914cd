"""
Deterministic pattern-based intent parser.

Used whenever the language model is unavailable or replies with something
unusable. Every input yields a CommandIntent; unmatched input is "unknown"
with confidence 0.
"""
import re
from typing import Callable, List, Optional, Tuple

from app.core import config
from app.features.ai_commands.intents import (
    CommandAction,
    CommandEntities,
    CommandIntent,
    EntityContext,
    PAIRED_ACTIONS,
)
from app.features.ai_commands.resolver import EntityResolver
from app.utils import get_logger


log = get_logger(__name__)


GENERIC_SUGGESTIONS = [
    "Please rephrase your command more clearly",
    "Try: create a permission called edit_posts",
    "Try: assign editor the permission edit_posts",
    "Try: list all roles",
]

# Single token or quoted name
NAME = r"(?:\"[^\"]+\"|'[^']+'|[\w:.\-]+)"
# Quoted name or several words, shortest first
PHRASE = r"(?:\"[^\"]+\"|'[^']+'|[\w:.\-]+(?:\s+[\w:.\-]+)*?)"

_DESCRIPTION = (
    r"(?:\s+(?:with\s+(?:the\s+|a\s+)?description|described\s+as|with\s+desc)\s*:?\s*(?P<description>.+))?"
)
_CALLED = rf"(?:(?:called|named)\s+(?P<called>{PHRASE})|(?P<name>{NAME}))"

_LEADING_FILLER = re.compile(
    r"^(?:(?:please|first|then|also|and|now|next|finally|lastly|can\s+you|could\s+you|kindly)\s*,?\s+)+",
    re.IGNORECASE,
)
_TRAILING_FILLER = re.compile(r"(?:\s+please)?[\s.!?]*$", re.IGNORECASE)


def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


CREATE_PERMISSION = _compile(
    rf"^(?:create|make|add|define)\s+(?:a\s+|an\s+)?(?:new\s+)?permission\s+{_CALLED}{_DESCRIPTION}$"
)
CREATE_ROLE = _compile(
    rf"^(?:create|make|add|define)\s+(?:a\s+|an\s+)?(?:new\s+)?role\s+{_CALLED}{_DESCRIPTION}$"
)
REMOVE_PERMISSION = _compile(
    rf"^(?:remove|revoke|take\s+away|unassign|withdraw)\s+(?:the\s+)?(?:permission\s+)?(?P<perm>{PHRASE})"
    rf"(?:\s+permission)?\s+from\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?$"
)
# "give permission to content editor to view dashboard"
ASSIGN_TO_ROLE_TO_PERMISSION = _compile(
    rf"^(?:give|grant)\s+(?:the\s+)?permission\s+to\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?"
    rf"\s+to\s+(?P<perm>{PHRASE})$"
)
# "give admin the permission to view dashboard"
ASSIGN_ROLE_PERMISSION_TO = _compile(
    rf"^(?:give|grant)\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?"
    rf"\s+the\s+permission\s+to\s+(?P<perm>{PHRASE})$"
)
# "assign it to admin", "add the delete_users permission to admin role"
ASSIGN_PERMISSION_TO_ROLE = _compile(
    rf"^(?:assign|give|grant|add)\s+(?:the\s+)?(?:permission\s+)?(?P<perm>{PHRASE})(?:\s+permission)?"
    rf"\s+to\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?$"
)
# "assign reader the permission can_read_articles", "assign editor edit_posts"
ASSIGN_ROLE_PERMISSION = _compile(
    rf"^(?:assign|give|grant|add)\s+(?:the\s+)?(?:role\s+)?(?P<role>{NAME})(?:\s+role)?"
    rf"\s+(?:the\s+)?(?:permission\s+)?(?P<perm>{NAME})(?:\s+permission)?$"
)
DESCRIBE_ROLE = [
    _compile(
        rf"^(?:describe|show|display|get|view)\s+(?:me\s+)?(?:the\s+)?(?:details\s+(?:of|for)\s+)?(?:the\s+)?"
        rf"role\s+(?P<role>{PHRASE})$"
    ),
    _compile(
        rf"^(?:describe|show|list|display|get|view|what\s+are)\s+(?:me\s+)?(?:all\s+)?(?:the\s+)?permissions\s+"
        rf"(?:of|for|on|in|assigned\s+to)\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?$"
    ),
    _compile(rf"^what\s+can\s+(?:the\s+)?(?:role\s+)?(?P<role>{PHRASE})(?:\s+role)?\s+do$"),
    _compile(rf"^describe\s+(?:the\s+)?(?P<role>{PHRASE})(?:\s+role)?$"),
]
_LIST_LEAD = r"^(?:list|show|display|view|get|what\s+are|which\s+are)(?:\s+(?:me|all|the|of|every|existing|current|available))*\s+"
LIST_ROLES = _compile(_LIST_LEAD + r"roles?$")
LIST_PERMISSIONS = _compile(_LIST_LEAD + r"permissions?$")


def _clean(command: str) -> str:
    text = command.strip()
    text = _LEADING_FILLER.sub("", text)
    return _TRAILING_FILLER.sub("", text)


def _group(match: re.Match, *names: str) -> Optional[str]:
    groups = match.groupdict()
    for name in names:
        if groups.get(name):
            return groups[name]
    return None


class FallbackIntentParser:
    def __init__(self, resolver: Optional[EntityResolver] = None):
        self.resolver = resolver or EntityResolver()
        self._rules: List[Tuple[Callable[[str], Optional[CommandIntent]], str]] = [
            (self._create_permission, "create_permission"),
            (self._create_role, "create_role"),
            (self._remove_permission, "remove_permission"),
            (self._assign_permission, "assign_permission"),
            (self._describe_role, "describe_role"),
            (self._list, "list"),
        ]

    def parse(self, command: str, context: Optional[EntityContext] = None) -> CommandIntent:
        context = context or EntityContext()
        text = _clean(command or "")
        for rule, name in self._rules:
            intent = rule(text)
            if intent is None:
                continue
            intent, resolved = self.resolver.resolve_intent(intent, context)
            if intent.action in PAIRED_ACTIONS and not resolved:
                # Both names present but at least one unknown; still actionable
                intent = intent.model_copy(update={"confidence": 0.7})
            log.debug(f"Fallback rule {name} matched {command!r}")
            return intent
        return CommandIntent.unknown(list(GENERIC_SUGGESTIONS))

    def _create_permission(self, text: str) -> Optional[CommandIntent]:
        match = CREATE_PERMISSION.match(text)
        if not match:
            return None
        return CommandIntent(
            action=CommandAction.CREATE_PERMISSION,
            entities=CommandEntities(
                permissionName=_group(match, "called", "name"),
                description=match.group("description"),
            ),
            confidence=0.85,
        )

    def _create_role(self, text: str) -> Optional[CommandIntent]:
        match = CREATE_ROLE.match(text)
        if not match:
            return None
        return CommandIntent(
            action=CommandAction.CREATE_ROLE,
            entities=CommandEntities(
                roleName=_group(match, "called", "name"),
                description=match.group("description"),
            ),
            confidence=0.85,
        )

    def _remove_permission(self, text: str) -> Optional[CommandIntent]:
        match = REMOVE_PERMISSION.match(text)
        if not match:
            return None
        return self._paired(CommandAction.REMOVE_PERMISSION, match)

    def _assign_permission(self, text: str) -> Optional[CommandIntent]:
        for pattern in (
            ASSIGN_TO_ROLE_TO_PERMISSION,
            ASSIGN_ROLE_PERMISSION_TO,
            ASSIGN_PERMISSION_TO_ROLE,
            ASSIGN_ROLE_PERMISSION,
        ):
            match = pattern.match(text)
            if match:
                return self._paired(CommandAction.ASSIGN_PERMISSION, match)
        return None

    def _describe_role(self, text: str) -> Optional[CommandIntent]:
        for pattern in DESCRIBE_ROLE:
            match = pattern.match(text)
            if match:
                return CommandIntent(
                    action=CommandAction.DESCRIBE_ROLE,
                    entities=CommandEntities(roleName=match.group("role")),
                    confidence=0.85,
                )
        return None

    def _list(self, text: str) -> Optional[CommandIntent]:
        if LIST_ROLES.match(text):
            return CommandIntent(action=CommandAction.LIST_ROLES, confidence=0.9)
        if LIST_PERMISSIONS.match(text):
            return CommandIntent(action=CommandAction.LIST_PERMISSIONS, confidence=0.9)
        return None

    @staticmethod
    def _paired(action: CommandAction, match: re.Match) -> CommandIntent:
        return CommandIntent(
            action=action,
            entities=CommandEntities(roleName=match.group("role"), permissionName=match.group("perm")),
            confidence=config.ASSIGNMENT_CONFIDENCE_FLOOR,
        )
