"""
RBAC store feature module.

Permissions, roles and their assignments, with case-insensitive unique names.
"""
