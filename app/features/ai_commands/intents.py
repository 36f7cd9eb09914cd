"""
Value objects passed between the stages of the command pipeline.

CommandIntent is what the classifier (or the fallback parser) understood from
one sentence, CommandOutcome is what executing it produced.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from app.features.ai_commands.exceptions import ErrorKind


class CommandAction(str, Enum):
    CREATE_PERMISSION = "create_permission"
    CREATE_ROLE = "create_role"
    ASSIGN_PERMISSION = "assign_permission"
    REMOVE_PERMISSION = "remove_permission"
    LIST_ROLES = "list_roles"
    LIST_PERMISSIONS = "list_permissions"
    DESCRIBE_ROLE = "describe_role"
    UNKNOWN = "unknown"


# Actions that name both a role and a permission
PAIRED_ACTIONS = (CommandAction.ASSIGN_PERMISSION, CommandAction.REMOVE_PERMISSION)

_NULL_STRINGS = {"", "null", "none", "n/a"}


class CommandEntities(BaseModel):
    roleName: Optional[str] = None
    permissionName: Optional[str] = None
    description: Optional[str] = None

    @field_validator("roleName", "permissionName", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Models often spell a missing entity as "null" or an empty string."""
        if isinstance(v, str):
            v = v.strip().strip("'\"").strip()
            if v.lower() in _NULL_STRINGS:
                return None
        return v


class CommandIntent(BaseModel):
    action: CommandAction
    entities: CommandEntities = Field(default_factory=CommandEntities)
    confidence: float = Field(..., ge=0.0, le=1.0)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("suggestions", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def unknown(cls, suggestions: List[str]) -> "CommandIntent":
        return cls(action=CommandAction.UNKNOWN, confidence=0.0, suggestions=suggestions)


class SplitReply(BaseModel):
    """Model reply to the "is this several commands?" question."""
    isMultiCommand: bool
    commands: List[str] = Field(..., min_length=1)

    @field_validator("commands")
    @classmethod
    def drop_blank(cls, v: List[str]) -> List[str]:
        commands = [c.strip() for c in v if c and c.strip()]
        if not commands:
            raise ValueError("commands must contain at least one non-empty command")
        return commands


@dataclass
class EntityContext:
    """
    What currently exists in the store, plus the entities the previous
    command in the same batch talked about (used to resolve "it").
    """
    role_names: List[str] = field(default_factory=list)
    permissions: Dict[str, Optional[str]] = field(default_factory=dict)
    last_role: Optional[str] = None
    last_permission: Optional[str] = None

    @property
    def permission_names(self) -> List[str]:
        return list(self.permissions)


class CommandOutcome(BaseModel):
    success: bool
    command: str
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    data: Optional[Any] = None
    suggestions: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    index: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        """Body for a single-command response; empty optionals are omitted."""
        body: Dict[str, Any] = {"success": self.success}
        if self.success:
            body["message"] = self.message
        else:
            body["error"] = self.error
        if self.data is not None:
            body["data"] = self.data
        if self.suggestions:
            body["suggestions"] = self.suggestions
        if self.confidence is not None:
            body["confidence"] = self.confidence
        return body


class BatchOutcome(BaseModel):
    success: bool
    isMultiCommand: bool = True
    message: str
    results: List[CommandOutcome]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
