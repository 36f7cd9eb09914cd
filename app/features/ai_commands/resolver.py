"""
Maps loosely worded entity mentions onto stored names.

"view dashboard" -> "can_view_dashboard", "editor" -> "content_editor".
"""
import re
from typing import Iterable, List, Optional, Tuple

from app.features.ai_commands.intents import CommandAction, CommandIntent, EntityContext

_SEPARATORS = re.compile(r"[\s\-:.]+")
_WHITESPACE = re.compile(r"\s+")
_PREFIXES = ("can_",)
_SUFFIXES = ("_permission", "_role")

PRONOUNS = {"it", "this", "that", "them", "this_one", "that_one"}

# Shorter mentions match too much by substring
MIN_SUBSTRING = 3

# Articles and filler an operator may put around a name
_FILLER = re.compile(r"^(?:the|a|an)\s+|\s+(?:role|permission)$", re.IGNORECASE)


def normalize(mention: str) -> str:
    """Lowercase, trim quotes and turn separators into underscores."""
    text = _FILLER.sub("", mention.strip().strip("'\"").strip())
    return _SEPARATORS.sub("_", text.lower()).strip("_")


def _stem(name: str) -> str:
    for prefix in _PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
    for suffix in _SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return name


class EntityResolver:
    """
    Matching order, first hit wins:

    1. exact match
    2. substring in either direction
    3. naming convention (can_<name>, <name>_permission) on either side

    A step that fits several names equally well resolves to nothing.

    Comparison is case-insensitive with spaces, hyphens, colons and dots
    treated as underscores.
    """

    def resolve(self, mention: Optional[str], names: Iterable[str]) -> Optional[str]:
        """Best stored name for ``mention``; None when nothing, or more than one name, fits best."""
        if not mention:
            return None
        key = normalize(mention)
        if not key or key in PRONOUNS:
            return None
        candidates = [(normalize(name), name) for name in names]

        for normalized, name in candidates:
            if normalized == key:
                return name

        # Closest length wins so "editor" picks "content_editor" over "content_editor_lead".
        # Short mentions never match inside a longer name; short names may match inside a mention.
        substring_hits = [
            (abs(len(normalized) - len(key)), name)
            for normalized, name in candidates
            if (len(key) >= MIN_SUBSTRING and key in normalized) or (normalized and normalized in key)
        ]
        if substring_hits:
            best = min(distance for distance, _ in substring_hits)
            return _only([name for distance, name in substring_hits if distance == best])

        stem = _stem(key)
        if not stem:
            return None
        return _only([name for normalized, name in candidates if _stem(normalized) == stem])

    def resolve_or_pass(self, mention: Optional[str], names: Iterable[str]) -> Optional[str]:
        """Resolved name, or the normalized mention so the executor can report it missing."""
        if not mention:
            return None
        return self.resolve(mention, names) or normalize(mention) or None

    def resolve_intent(self, intent: CommandIntent, context: EntityContext) -> Tuple[CommandIntent, bool]:
        """
        Canonicalize the entity names of ``intent`` against ``context``.

        Names for entities being created are only tidied (quotes stripped,
        whitespace to underscores). Names of existing entities are resolved,
        with "it"/"this"/"that" standing for the previous command's entity.

        Returns:
            The updated intent and whether every referenced entity resolved
        """
        entities = intent.entities
        role, permission = entities.roleName, entities.permissionName

        if intent.action == CommandAction.CREATE_PERMISSION:
            permission = new_name(permission)
            resolved = True
        elif intent.action == CommandAction.CREATE_ROLE:
            role = new_name(role)
            resolved = True
        else:
            role = _antecedent(role, context.last_role)
            permission = _antecedent(permission, context.last_permission)
            resolved_role = self.resolve(role, context.role_names)
            resolved_permission = self.resolve(permission, context.permission_names)
            resolved = (role is None or resolved_role is not None) and (
                permission is None or resolved_permission is not None
            )
            role = resolved_role or self.resolve_or_pass(role, ())
            permission = resolved_permission or self.resolve_or_pass(permission, ())

        updated = entities.model_copy(update={"roleName": role, "permissionName": permission})
        return intent.model_copy(update={"entities": updated}), resolved


def new_name(mention: Optional[str]) -> Optional[str]:
    """Name for an entity about to be created: keeps case, whitespace becomes underscores."""
    if not mention:
        return None
    name = _WHITESPACE.sub("_", mention.strip().strip("'\"").strip())
    return name or None


def _only(names: List[str]) -> Optional[str]:
    # Ties are ambiguous; the caller reports the mention as not found
    return names[0] if len(names) == 1 else None


def _antecedent(mention: Optional[str], previous: Optional[str]) -> Optional[str]:
    if mention and previous and normalize(mention) in PRONOUNS:
        return previous
    return mention
