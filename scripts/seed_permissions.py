"""
Seed script to populate the default Admin role and its permissions.

Safe to run repeatedly: existing permissions, roles and assignments are kept.

Usage:
    python -m scripts.seed_permissions
"""
import asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.permissions.models import Permission, Role
from app.features.permissions.repository import RbacRepository
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_PERMISSIONS = [
    ("users:read", "Read users"),
    ("users:write", "Create/update users"),
    ("users:delete", "Delete users"),
    ("roles:read", "Read roles"),
    ("roles:write", "Create/update roles"),
    ("roles:delete", "Delete roles"),
]

ADMIN_ROLE = "Admin"


async def seed_permissions(repository: RbacRepository) -> dict[str, Permission]:
    """
    Create default permissions.

    Returns:
        Dictionary mapping permission names to Permission objects
    """
    log.info("Creating default permissions...")
    permissions_map = {}

    for name, description in DEFAULT_PERMISSIONS:
        existing = await repository.find_permission_by_name(name)
        if existing:
            log.debug(f"Permission '{name}' already exists, skipping")
            permissions_map[name] = existing
            continue

        permissions_map[name] = await repository.create_permission(name, description)
        log.info(f"Created permission: {name}")

    return permissions_map


async def seed_admin_role(repository: RbacRepository, permissions_map: dict[str, Permission]) -> Role:
    """Create the Admin role and assign it every default permission."""
    role = await repository.find_role_by_name(ADMIN_ROLE)
    if role is None:
        role = await repository.create_role(ADMIN_ROLE, "Administrator with every default permission")
        log.info(f"Created role '{ADMIN_ROLE}'")

    assigned = 0
    for permission in permissions_map.values():
        if await repository.find_assignment(role.id, permission.id):
            continue
        await repository.create_assignment(role.id, permission.id)
        assigned += 1

    log.info(f"Assigned {assigned} new permission(s) to '{ADMIN_ROLE}'")
    return role


async def seed(db: AsyncSession) -> Role:
    repository = RbacRepository(db)
    permissions_map = await seed_permissions(repository)
    return await seed_admin_role(repository, permissions_map)


async def main():
    """Main function to seed the default role and permissions."""
    log.info("Initializing database tables...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            await seed(db)
        except Exception as e:
            log.error(f"Error seeding permissions: {e}", exc_info=True)
            await db.rollback()
            raise

    log.info("Permission seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
