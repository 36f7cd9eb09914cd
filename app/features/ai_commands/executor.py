"""
Executes one resolved CommandIntent against the RBAC store.

Every handler either returns a success CommandOutcome or raises a
CommandError, which execute() turns into a failure outcome. Assigning an
assigned permission and removing an unassigned one never write.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core import config
from app.features.ai_commands.classifier import IntentClassifier
from app.features.ai_commands.exceptions import (
    AlreadyInDesiredStateError,
    CommandError,
    ConflictError,
    LowConfidenceError,
    NotFoundError,
    ValidationError,
)
from app.features.ai_commands.fallback import GENERIC_SUGGESTIONS
from app.features.ai_commands.intents import CommandAction, CommandIntent, CommandOutcome
from app.features.permissions.models import Permission, Role
from app.features.permissions.repository import RbacRepository
from app.features.permissions.schemas import AssignmentResponse, PermissionResponse, RoleWithPermissions
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_PERMISSION_DESCRIPTION = "Created via AI command"


def _dump(schema, obj) -> Dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json")


class CommandExecutor:
    def __init__(
        self,
        repository: RbacRepository,
        classifier: IntentClassifier,
        actor_id: Optional[str] = None,
    ):
        self.repository = repository
        self.classifier = classifier
        self.actor_id = actor_id
        self._handlers: Dict[CommandAction, Callable[[CommandIntent, str, str], Awaitable[CommandOutcome]]] = {
            CommandAction.CREATE_PERMISSION: self._create_permission,
            CommandAction.CREATE_ROLE: self._create_role,
            CommandAction.ASSIGN_PERMISSION: self._assign_permission,
            CommandAction.REMOVE_PERMISSION: self._remove_permission,
            CommandAction.LIST_ROLES: self._list_roles,
            CommandAction.LIST_PERMISSIONS: self._list_permissions,
            CommandAction.DESCRIBE_ROLE: self._describe_role,
        }

    async def execute(
        self, intent: CommandIntent, command: str, original_command: Optional[str] = None
    ) -> CommandOutcome:
        """
        Run ``intent`` and describe what happened.

        Args:
            intent: Resolved intent for ``command``
            command: The (sub-)command the intent came from
            original_command: Whole pre-split input, used for correction suggestions

        Returns:
            CommandOutcome; failures carry error_kind and suggestions
        """
        original_command = original_command or command
        try:
            handler = self._accept(intent)
            outcome = await handler(intent, command, original_command)
        except CommandError as e:
            log.info(f"Command {command!r} failed ({e.error_kind.value}): {e.message}")
            return CommandOutcome(
                success=False,
                command=command,
                error=e.message,
                error_kind=e.error_kind,
                suggestions=e.suggestions,
                confidence=intent.confidence,
            )
        log.info(f"Command {command!r} executed as {intent.action.value}")
        return outcome

    def _accept(self, intent: CommandIntent):
        if intent.action == CommandAction.UNKNOWN or intent.confidence < config.CONFIDENCE_THRESHOLD:
            message = (
                "Could not understand the command"
                if intent.action == CommandAction.UNKNOWN
                else f"Not confident enough to run this command (confidence {intent.confidence:.2f})"
            )
            raise LowConfidenceError(message, intent.suggestions or list(GENERIC_SUGGESTIONS))
        return self._handlers[intent.action]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _create_permission(self, intent: CommandIntent, command: str, _original: str) -> CommandOutcome:
        name = intent.entities.permissionName
        if not name:
            raise ValidationError(
                "A permission name is required",
                field="permissionName",
                suggestions=["Try: create a permission called edit_posts"],
            )
        existing = await self.repository.find_permission_by_name(name)
        if existing:
            raise ConflictError(
                f'Permission "{existing.name}" already exists',
                [f"Assign it with: assign <role> the permission {existing.name}", "List permissions with: list permissions"],
            )

        permission = await self.repository.create_permission(
            name, intent.entities.description or DEFAULT_PERMISSION_DESCRIPTION
        )
        await self._audit("create", "permission", permission.id, {"name": permission.name})
        return self._success(command, intent, f'Permission "{permission.name}" created successfully',
                             _dump(PermissionResponse, permission))

    async def _create_role(self, intent: CommandIntent, command: str, _original: str) -> CommandOutcome:
        name = intent.entities.roleName
        if not name:
            raise ValidationError(
                "A role name is required",
                field="roleName",
                suggestions=["Try: create a role called moderator"],
            )
        existing = await self.repository.find_role_by_name(name)
        if existing:
            raise ConflictError(
                f'Role "{existing.name}" already exists',
                [f"Describe it with: describe role {existing.name}", "List roles with: list roles"],
            )

        role = await self.repository.create_role(name, intent.entities.description)
        await self._audit("create", "role", role.id, {"name": role.name})
        return self._success(command, intent, f'Role "{role.name}" created successfully',
                             _dump(RoleWithPermissions, role))

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def _assign_permission(self, intent: CommandIntent, command: str, original: str) -> CommandOutcome:
        role, permission = await self._pair(intent, original)

        if await self.repository.find_assignment(role.id, permission.id):
            message = f'Permission "{permission.name}" is already assigned to role "{role.name}"'
            return self._success(command, intent, message, suggestions=[
                f"Remove it with: remove {permission.name} from {role.name}",
                f"See everything {role.name} has with: describe role {role.name}",
            ])

        assignment = await self.repository.create_assignment(role.id, permission.id)
        await self._audit("assign_permission", "role", role.id,
                          {"permission_id": permission.id, "permission_name": permission.name})
        return self._success(
            command, intent,
            f'Permission "{permission.name}" assigned to role "{role.name}"',
            _dump(AssignmentResponse, assignment),
        )

    async def _remove_permission(self, intent: CommandIntent, command: str, original: str) -> CommandOutcome:
        role, permission = await self._pair(intent, original)

        if not await self.repository.find_assignment(role.id, permission.id):
            raise AlreadyInDesiredStateError(
                f'Permission "{permission.name}" is not assigned to role "{role.name}"',
                [
                    f"See what {role.name} has with: describe role {role.name}",
                    f"Assign it with: assign {role.name} the permission {permission.name}",
                ],
                {"role": role.name, "permission": permission.name},
            )

        removed = await self.repository.delete_assignments(role.id, permission.id)
        await self._audit("remove_permission", "role", role.id,
                          {"permission_id": permission.id, "permission_name": permission.name, "removed": removed})
        return self._success(command, intent, f'Permission "{permission.name}" removed from role "{role.name}"')

    async def _pair(self, intent: CommandIntent, original: str) -> tuple[Role, Permission]:
        role_name = intent.entities.roleName
        permission_name = intent.entities.permissionName
        if not role_name or not permission_name:
            missing = "role" if not role_name else "permission"
            raise ValidationError(
                f"Both a role and a permission are required, the {missing} name is missing",
                field="roleName" if not role_name else "permissionName",
                suggestions=["Try: assign editor the permission edit_posts"],
            )

        role = await self.repository.find_role_by_name(role_name)
        if role is None:
            error = NotFoundError("role", role_name)
            error.suggestions = await self._corrections(original, error.message)
            raise error
        permission = await self.repository.find_permission_by_name(permission_name)
        if permission is None:
            error = NotFoundError("permission", permission_name)
            error.suggestions = await self._corrections(original, error.message)
            raise error
        return role, permission

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _list_roles(self, intent: CommandIntent, command: str, _original: str) -> CommandOutcome:
        roles = await self.repository.list_roles()
        return self._success(command, intent, f"Found {len(roles)} role(s)",
                             [_dump(RoleWithPermissions, r) for r in roles])

    async def _list_permissions(self, intent: CommandIntent, command: str, _original: str) -> CommandOutcome:
        permissions = await self.repository.list_permissions()
        return self._success(command, intent, f"Found {len(permissions)} permission(s)",
                             [_dump(PermissionResponse, p) for p in permissions])

    async def _describe_role(self, intent: CommandIntent, command: str, original: str) -> CommandOutcome:
        name = intent.entities.roleName
        if not name:
            raise ValidationError("A role name is required", field="roleName",
                                  suggestions=["Try: describe role admin"])
        role = await self.repository.find_role_by_name(name)
        if role is None:
            error = NotFoundError("role", name)
            error.suggestions = await self._corrections(original, error.message)
            raise error

        names = ", ".join(role.permission_names) or "no permissions"
        return self._success(command, intent, f'Role "{role.name}" has {names}', _dump(RoleWithPermissions, role))

    # ------------------------------------------------------------------

    async def _corrections(self, command: str, error: str) -> List[str]:
        context = await self.repository.snapshot()
        return await self.classifier.suggest_corrections(command, error, context)

    async def _audit(self, action: str, resource_type: str, resource_id: str, details: Dict[str, Any]) -> None:
        await self.repository.record_audit(self.actor_id, action, resource_type, resource_id, details)

    @staticmethod
    def _success(
        command: str,
        intent: CommandIntent,
        message: str,
        data: Any = None,
        suggestions: Optional[List[str]] = None,
    ) -> CommandOutcome:
        return CommandOutcome(
            success=True,
            command=command,
            message=message,
            data=data,
            suggestions=suggestions or [],
            confidence=intent.confidence,
        )
