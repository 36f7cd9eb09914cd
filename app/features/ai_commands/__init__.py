"""
Natural-language RBAC commands.

Turns free-form sentences ("create permission view_dashboard then assign it
to admin") into validated, idempotent changes to roles and permissions.
"""
