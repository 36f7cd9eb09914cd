"""Tests for CommandExecutor against an in-memory RBAC store."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.ai_commands.classifier import DEFAULT_CORRECTIONS, IntentClassifier
from app.features.ai_commands.exceptions import ErrorKind
from app.features.ai_commands.executor import DEFAULT_PERMISSION_DESCRIPTION, CommandExecutor
from app.features.ai_commands.fallback import GENERIC_SUGGESTIONS
from app.features.ai_commands.intents import CommandAction, CommandEntities, CommandIntent
from app.features.permissions.models import AuditLog, Permission, Role, RolePermission
from app.features.permissions.repository import RbacRepository


def make_intent(action: CommandAction, confidence: float = 0.9, **entities) -> CommandIntent:
    return CommandIntent(action=action, entities=CommandEntities(**entities), confidence=confidence)


async def count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


@pytest.fixture
def executor(seeded: RbacRepository, offline_classifier: IntentClassifier) -> CommandExecutor:
    return CommandExecutor(seeded, offline_classifier)


@pytest.mark.parametrize("confidence", [0.0, 0.3, 0.49])
async def test_low_confidence_never_mutates(
    executor: CommandExecutor, db_session: AsyncSession, confidence: float
) -> None:
    """Intents under the threshold fail with suggestions and leave the store untouched."""
    intent = make_intent(CommandAction.CREATE_ROLE, confidence, roleName="moderator")
    outcome = await executor.execute(intent, "maybe a moderator role")
    assert outcome.success is False
    assert outcome.error_kind == ErrorKind.LOW_CONFIDENCE
    assert outcome.suggestions
    assert await count(db_session, Role) == 2


async def test_low_confidence_keeps_model_suggestions(executor: CommandExecutor) -> None:
    """Suggestions on the intent are passed to the caller."""
    intent = CommandIntent(
        action=CommandAction.ASSIGN_PERMISSION,
        entities=CommandEntities(roleName="admin", permissionName="edit_posts"),
        confidence=0.2,
        suggestions=["Did you mean: assign admin the permission edit_posts"],
    )
    outcome = await executor.execute(intent, "admin posts?")
    assert outcome.suggestions == ["Did you mean: assign admin the permission edit_posts"]


async def test_unknown_intent_uses_generic_suggestions(executor: CommandExecutor) -> None:
    """Unknown intents without suggestions fall back to generic guidance."""
    outcome = await executor.execute(CommandIntent(action=CommandAction.UNKNOWN, confidence=0.0), "hmm")
    assert outcome.success is False
    assert outcome.error == "Could not understand the command"
    assert outcome.suggestions == GENERIC_SUGGESTIONS


async def test_create_permission_default_description(executor: CommandExecutor, db_session: AsyncSession) -> None:
    """A permission created without description gets the provenance note."""
    outcome = await executor.execute(
        make_intent(CommandAction.CREATE_PERMISSION, permissionName="publish_posts"), "create permission publish_posts"
    )
    assert outcome.success is True
    assert outcome.message == 'Permission "publish_posts" created successfully'
    assert outcome.data["description"] == DEFAULT_PERMISSION_DESCRIPTION
    assert await count(db_session, Permission) == 3
    assert await count(db_session, AuditLog) == 1


async def test_create_permission_conflict_is_case_insensitive(executor: CommandExecutor) -> None:
    """Creating a name that exists in another case is a conflict."""
    outcome = await executor.execute(
        make_intent(CommandAction.CREATE_PERMISSION, permissionName="Edit_Posts"), "create permission Edit_Posts"
    )
    assert outcome.success is False
    assert outcome.error_kind == ErrorKind.CONFLICT
    assert outcome.error == 'Permission "edit_posts" already exists'
    assert outcome.suggestions


async def test_create_role_requires_name(executor: CommandExecutor) -> None:
    """A create_role intent without a name is a validation failure."""
    outcome = await executor.execute(make_intent(CommandAction.CREATE_ROLE), "create a role")
    assert outcome.success is False
    assert outcome.error_kind == ErrorKind.VALIDATION
    assert outcome.suggestions


async def test_create_role(executor: CommandExecutor) -> None:
    """A new role starts without permissions."""
    outcome = await executor.execute(
        make_intent(CommandAction.CREATE_ROLE, roleName="moderator", description="Moderates comments"),
        "create role moderator",
    )
    assert outcome.success is True
    assert outcome.data["name"] == "moderator"
    assert outcome.data["description"] == "Moderates comments"
    assert outcome.data["permission_names"] == []


async def test_assign_twice_stores_one_assignment(executor: CommandExecutor, db_session: AsyncSession) -> None:
    """The second assign explains instead of writing again."""
    intent = make_intent(CommandAction.ASSIGN_PERMISSION, roleName="admin", permissionName="edit_posts")

    first = await executor.execute(intent, "assign admin edit_posts")
    assert first.success is True
    assert first.message == 'Permission "edit_posts" assigned to role "admin"'

    second = await executor.execute(intent, "assign admin edit_posts")
    assert second.success is True
    assert "already assigned" in second.message
    assert second.suggestions
    assert await count(db_session, RolePermission) == 1


async def test_assign_missing_role_is_not_found(executor: CommandExecutor, db_session: AsyncSession) -> None:
    """A missing role yields not_found with correction suggestions."""
    intent = make_intent(CommandAction.ASSIGN_PERMISSION, roleName="ghost", permissionName="edit_posts")
    outcome = await executor.execute(intent, "assign ghost edit_posts")
    assert outcome.success is False
    assert outcome.error_kind == ErrorKind.NOT_FOUND
    assert outcome.error == 'Role "ghost" not found'
    assert outcome.suggestions == DEFAULT_CORRECTIONS
    assert await count(db_session, RolePermission) == 0


async def test_assign_requires_both_names(executor: CommandExecutor) -> None:
    """An assignment without a permission name is a validation failure."""
    outcome = await executor.execute(make_intent(CommandAction.ASSIGN_PERMISSION, roleName="admin"), "assign admin")
    assert outcome.error_kind == ErrorKind.VALIDATION


async def test_remove_unassigned_leaves_store_unchanged(executor: CommandExecutor, db_session: AsyncSession) -> None:
    """Removing a permission the role does not hold changes nothing."""
    intent = make_intent(CommandAction.REMOVE_PERMISSION, roleName="admin", permissionName="edit_posts")
    outcome = await executor.execute(intent, "remove edit_posts from admin")
    assert outcome.success is False
    assert outcome.error_kind == ErrorKind.ALREADY_IN_DESIRED_STATE
    assert outcome.error == 'Permission "edit_posts" is not assigned to role "admin"'
    assert outcome.suggestions
    assert await count(db_session, RolePermission) == 0
    assert await count(db_session, AuditLog) == 0


async def test_remove_missing_permission_is_not_found(executor: CommandExecutor) -> None:
    """A missing permission yields not_found."""
    intent = make_intent(CommandAction.REMOVE_PERMISSION, roleName="admin", permissionName="fly")
    outcome = await executor.execute(intent, "remove fly from admin")
    assert outcome.error_kind == ErrorKind.NOT_FOUND
    assert outcome.error == 'Permission "fly" not found'


async def test_assign_then_remove(executor: CommandExecutor, db_session: AsyncSession) -> None:
    """Remove deletes exactly the assignment created before."""
    assign = make_intent(CommandAction.ASSIGN_PERMISSION, roleName="admin", permissionName="edit_posts")
    other = make_intent(CommandAction.ASSIGN_PERMISSION, roleName="admin", permissionName="can_view_dashboard")
    remove = make_intent(CommandAction.REMOVE_PERMISSION, roleName="admin", permissionName="edit_posts")
    await executor.execute(assign, "assign admin edit_posts")
    await executor.execute(other, "assign admin can_view_dashboard")

    outcome = await executor.execute(remove, "remove edit_posts from admin")
    assert outcome.success is True
    assert outcome.message == 'Permission "edit_posts" removed from role "admin"'
    assert await count(db_session, RolePermission) == 1

    described = await executor.execute(make_intent(CommandAction.DESCRIBE_ROLE, roleName="admin"), "describe admin")
    assert described.data["permission_names"] == ["can_view_dashboard"]


async def test_describe_role(executor: CommandExecutor) -> None:
    """describe_role lists the role's permissions in the message and data."""
    await executor.execute(
        make_intent(CommandAction.ASSIGN_PERMISSION, roleName="content_editor", permissionName="edit_posts"),
        "assign content_editor edit_posts",
    )
    outcome = await executor.execute(
        make_intent(CommandAction.DESCRIBE_ROLE, roleName="content_editor"), "describe content_editor"
    )
    assert outcome.success is True
    assert outcome.message == 'Role "content_editor" has edit_posts'
    assert [p["name"] for p in outcome.data["permissions"]] == ["edit_posts"]


async def test_describe_missing_role(executor: CommandExecutor) -> None:
    """describe_role on a missing role is not_found."""
    outcome = await executor.execute(make_intent(CommandAction.DESCRIBE_ROLE, roleName="ghost"), "describe ghost")
    assert outcome.error_kind == ErrorKind.NOT_FOUND


async def test_list_roles_and_permissions(executor: CommandExecutor) -> None:
    """Listing returns every stored record."""
    roles = await executor.execute(make_intent(CommandAction.LIST_ROLES), "list roles")
    assert [r["name"] for r in roles.data] == ["admin", "content_editor"]
    assert all("permission_names" in r for r in roles.data)

    permissions = await executor.execute(make_intent(CommandAction.LIST_PERMISSIONS), "list permissions")
    assert sorted(p["name"] for p in permissions.data) == ["can_view_dashboard", "edit_posts"]


async def test_audit_records_actor(seeded: RbacRepository, offline_classifier, operator, db_session) -> None:
    """Mutations are recorded against the acting user."""
    executor = CommandExecutor(seeded, offline_classifier, actor_id=operator.id)
    await executor.execute(make_intent(CommandAction.CREATE_ROLE, roleName="auditor"), "create role auditor")
    entry = (await db_session.execute(select(AuditLog))).scalars().one()
    assert entry.user_id == operator.id
    assert entry.action == "create"
    assert entry.resource_type == "role"
    assert entry.details == {"name": "auditor"}
