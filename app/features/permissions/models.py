"""
Permission, Role and assignment models for the RBAC store.

- Permissions and roles have names that are unique regardless of case
- A role holds permissions through RolePermission rows, one per pair
- AuditLog records every mutation applied on behalf of a user
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON, Text, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid


class Permission(Base, TimestampMixin):
    """
    A named capability that can be granted to roles.

    Examples: can_view_dashboard, edit_articles, users:read
    """
    __tablename__ = "permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, name={self.name!r})>"


class Role(Base, TimestampMixin):
    """
    A named collection of permissions.

    Examples: admin, content_editor, moderator
    """
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    assignments: Mapped[list["RolePermission"]] = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def permissions(self) -> list["Permission"]:
        return sorted((a.permission for a in self.assignments), key=lambda p: p.name.lower())

    @property
    def permission_names(self) -> list[str]:
        return [p.name for p in self.permissions]

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r})>"


class RolePermission(Base, TimestampMixin):
    """Grants one permission to one role. At most one row exists per pair."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_pair"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    role_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permission_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    role: Mapped["Role"] = relationship("Role", back_populates="assignments", lazy="selectin")
    permission: Mapped["Permission"] = relationship("Permission", lazy="selectin")

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"


# Names are unique regardless of case
Index("uq_permissions_name_lower", func.lower(Permission.name), unique=True)
Index("uq_roles_name_lower", func.lower(Role.name), unique=True)


class AuditLog(Base, TimestampMixin):
    """
    Audit log for tracking RBAC mutations.

    Tracks who did what and to which record.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, resource={self.resource_type})>"
