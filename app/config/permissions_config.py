"""
Project Access Configuration
Defines account types, project membership roles and the capability matrix
derived from them. Used by core dependencies, /auth/me and project setup.
"""

from typing import List

# Account types (stored in user_metadata.account_type)
ACCOUNT_TYPES = {
    "epc": {
        "can_edit": True,
        "description": "EPC contractor: enters and edits pile data"
    },
    "owner": {
        "can_edit": False,
        "description": "Owner's representative: read-only access to published data"
    }
}

DEFAULT_ACCOUNT_TYPE = "epc"

# Membership roles (user_projects.role for invited members)
MEMBERSHIP_ROLES = {
    "admin": "Project administrator",
    "manager": "Project manager",
    "engineer": "Field engineer",
    "viewer": "Read-only viewer",
    "owner_rep": "Owner's representative"
}

# Roles allowed to manage invitations besides the project owner
PROJECT_ADMIN_ROLES = ["admin", "manager"]

# Job role recorded for the creator during project setup (free text)
DEFAULT_JOB_ROLE = "project_manager"

TRACKER_SYSTEMS = ["software", "spreadsheet", "manual", "none"]
DEFAULT_TRACKER_SYSTEM = "software"

PILE_STATUSES = ["accepted", "tolerance", "refusal", "pending"]

# Capabilities per access level
CAPABILITIES = {
    "viewer": ["projects:read", "piles:read", "analytics:read", "weather:read"],
    "editor": [
        "piles:create", "piles:update", "piles:delete", "piles:import",
        "piles:publish", "pile_lookup:upload", "production:upload"
    ],
    "owner": ["projects:update", "invitations:manage"],
    "super_admin": ["admin:access"]
}


def can_edit(account_type: str) -> bool:
    """Only EPC accounts may write pile data"""
    config = ACCOUNT_TYPES.get(account_type or DEFAULT_ACCOUNT_TYPE)
    return bool(config and config["can_edit"])


def get_capabilities(
    account_type: str,
    is_owner: bool = False,
    is_super_admin: bool = False
) -> List[str]:
    """
    Returns the sorted capability list for a user.
    Format: ["analytics:read", "piles:create", ...]
    """
    capabilities = set(CAPABILITIES["viewer"])
    if is_super_admin or can_edit(account_type):
        capabilities.update(CAPABILITIES["editor"])
    if is_super_admin or is_owner:
        capabilities.update(CAPABILITIES["owner"])
    if is_super_admin:
        capabilities.update(CAPABILITIES["super_admin"])
    return sorted(capabilities)
