"""
Data access for permissions, roles and role-permission assignments.

All name lookups are case-insensitive. Mutations commit immediately so a later
command in the same batch sees them, and a uniqueness violation only rolls
back its own write.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy import select, delete, and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.ai_commands.exceptions import ConflictError
from app.features.ai_commands.intents import EntityContext
from app.features.permissions.models import AuditLog, Permission, Role, RolePermission
from app.utils import get_logger


log = get_logger(__name__)


class RbacRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def create_permission(self, name: str, description: Optional[str] = None) -> Permission:
        permission = Permission(name=name, description=description)
        await self._insert(permission, f'Permission "{name}" already exists')
        return permission

    async def find_permission_by_name(self, name: str, case_insensitive: bool = True) -> Optional[Permission]:
        column = func.lower(Permission.name) if case_insensitive else Permission.name
        stmt = select(Permission).where(column == (name.lower() if case_insensitive else name))
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_permissions(self) -> List[Permission]:
        result = await self.db.execute(select(Permission).order_by(Permission.name))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(name=name, description=description, assignments=[])
        await self._insert(role, f'Role "{name}" already exists')
        return role

    async def find_role_by_name(self, name: str, case_insensitive: bool = True) -> Optional[Role]:
        column = func.lower(Role.name) if case_insensitive else Role.name
        stmt = (
            select(Role)
            .where(column == (name.lower() if case_insensitive else name))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_roles(self) -> List[Role]:
        """List every role with its assignments and their permissions loaded."""
        stmt = select(Role).order_by(Role.name).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def create_assignment(self, role_id: str, permission_id: str) -> RolePermission:
        assignment = RolePermission(role_id=role_id, permission_id=permission_id)
        await self._insert(assignment, "Permission is already assigned to this role")
        return assignment

    async def find_assignment(self, role_id: str, permission_id: str) -> Optional[RolePermission]:
        stmt = select(RolePermission).where(
            and_(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def delete_assignments(self, role_id: str, permission_id: str) -> int:
        stmt = delete(RolePermission).where(
            and_(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Context and audit
    # ------------------------------------------------------------------

    async def snapshot(self) -> EntityContext:
        """Current role names and permission names/descriptions for the classifier."""
        roles = await self.db.execute(select(Role.name).order_by(Role.name))
        permissions = await self.db.execute(
            select(Permission.name, Permission.description).order_by(Permission.name)
        )
        return EntityContext(
            role_names=list(roles.scalars().all()),
            permissions={name: description for name, description in permissions.all()},
        )

    async def record_audit(
        self,
        user_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )
        self.db.add(audit_log)
        await self.db.commit()

        log.info(f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id}")
        return audit_log

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _insert(self, instance, conflict_message: str) -> None:
        self.db.add(instance)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(conflict_message)
        await self.db.refresh(instance)
