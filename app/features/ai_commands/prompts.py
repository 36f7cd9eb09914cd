"""
Prompt templates for the language model.

Each template asks for JSON only; replies go through parse_structured_reply.
"""
from jinja2 import Template

from app.features.ai_commands.intents import EntityContext


PARSE_COMMAND = Template('''You are an AI assistant specialized in parsing Role-Based Access Control (RBAC) commands.
Parse the following natural language command and extract the intent and entities.

Command: "{{ command }}"

Existing roles:
{% for name in context.role_names %}- {{ name }}
{% else %}(none)
{% endfor %}
Existing permissions:
{% for name, description in context.permissions.items() %}- {{ name }}{% if description %}: {{ description }}{% endif %}
{% else %}(none)
{% endfor %}
{% if context.last_role or context.last_permission %}
The previous command in this request referred to:
{% if context.last_role %}- role {{ context.last_role }}
{% endif %}{% if context.last_permission %}- permission {{ context.last_permission }}
{% endif %}Words like "it", "this" or "that" refer to these.
{% endif %}
Respond ONLY with a valid JSON object in this exact format:
{
  "action": "create_permission" | "create_role" | "assign_permission" | "remove_permission" | "list_roles" | "list_permissions" | "describe_role" | "unknown",
  "entities": {
    "roleName": "extracted role name or null",
    "permissionName": "extracted permission name or null",
    "description": "extracted description or null"
  },
  "confidence": 0.0 to 1.0,
  "suggestions": ["alternative interpretation 1", "alternative interpretation 2"]
}

Rules:
- "action" must be one of the specified values
- "confidence" should be between 0 and 1; use 0.8+ if the intent is clear
- "suggestions" should contain alternative phrasings only if confidence < 0.7
- Extract entity names without quotes or extra formatting
- When a mention refers to an existing role or permission, use the EXACT existing name
  (e.g. "view dashboard" -> "can_view_dashboard", "content editor" -> "content_editor")
- For new roles or permissions, use the name as the user wrote it, with spaces replaced by underscores
- For assign/give/grant/add commands with a role and a permission, use "assign_permission"
- For remove/revoke/take away commands with a role and a permission, use "remove_permission"
- If the command mentions both a role name and a permission name, confidence should be 0.85 or higher

Examples:
- "create a permission called edit_articles" -> action: "create_permission", permissionName: "edit_articles", confidence: 0.95
- "assign reader the permission can_read_articles" -> action: "assign_permission", roleName: "reader", permissionName: "can_read_articles", confidence: 0.95
- "give admin role the delete_users permission" -> action: "assign_permission", roleName: "admin", permissionName: "delete_users", confidence: 0.95
- "revoke edit_posts from editor" -> action: "remove_permission", roleName: "editor", permissionName: "edit_posts", confidence: 0.9
- "make a new role called moderator" -> action: "create_role", roleName: "moderator", confidence: 0.9
- "what can the admin role do" -> action: "describe_role", roleName: "admin", confidence: 0.9
- "list all roles" -> action: "list_roles", confidence: 1.0

Now parse the command above and respond with JSON only.
''')


SPLIT_COMMANDS = Template('''Analyze this command and determine if it contains multiple RBAC operations:

Command: "{{ command }}"

If it contains multiple distinct operations (like creating multiple things or doing multiple actions), split them into separate commands.
Keep the original order. Respond ONLY with a JSON object:

{
  "isMultiCommand": true/false,
  "commands": ["command 1", "command 2", ...]
}

Examples:
- "create a role called moderator" -> { "isMultiCommand": false, "commands": ["create a role called moderator"] }
- "create a role called moderator and create role guest" -> { "isMultiCommand": true, "commands": ["create a role called moderator", "create role guest"] }
- "first create permission view_dashboard then assign it to admin" -> { "isMultiCommand": true, "commands": ["create permission view_dashboard", "assign admin the permission view_dashboard"] }
- "create a role called sales and marketing" -> { "isMultiCommand": false, "commands": ["create a role called sales and marketing"] }

Now analyze the command above.
''')


SUGGEST_CORRECTIONS = Template('''The user tried to execute this RBAC command: "{{ command }}"
But it failed with this error: "{{ error }}"
{% if context %}
Existing roles: {{ context.role_names | join(", ") or "(none)" }}
Existing permissions: {{ context.permission_names | join(", ") or "(none)" }}
{% endif %}
Provide 3 helpful suggestions to fix the command. Be specific and actionable.
Respond with a JSON array of strings.

Example: ["Create the role first using: create role editor", "Check if the permission name is spelled correctly", "Use quotes around names with spaces"]
''')


def render_parse_command(command: str, context: EntityContext) -> str:
    return PARSE_COMMAND.render(command=command, context=context)


def render_split_commands(command: str) -> str:
    return SPLIT_COMMANDS.render(command=command)


def render_suggest_corrections(command: str, error: str, context: EntityContext | None = None) -> str:
    return SUGGEST_CORRECTIONS.render(command=command, error=error, context=context)
