from typing import Optional

DEFAULT_ROLE = "user"
AGENT_ROLE = "agent"
ADMIN_ROLE = "admin"

STAFF_ROLES = (ADMIN_ROLE, AGENT_ROLE)


def normalize_role(role: Optional[str]) -> str:
    """Map any stored role value onto one of the known roles (unknown -> user)."""
    value = (role or "").strip().lower()
    if value == ADMIN_ROLE:
        return ADMIN_ROLE
    if value == AGENT_ROLE:
        return AGENT_ROLE
    return DEFAULT_ROLE


def is_admin(role: Optional[str]) -> bool:
    return normalize_role(role) == ADMIN_ROLE


def is_agent(role: Optional[str]) -> bool:
    return normalize_role(role) == AGENT_ROLE
