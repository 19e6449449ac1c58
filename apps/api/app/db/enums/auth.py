"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Actor roles.

    - ADMIN: identity management only (users, roles, company membership)
    - MANAGER: program manager, global read/write across companies
    - CONTRACTOR: member of one contracting company, own company data only
    - UTILITY: utility client, companies explicitly granted via user_company_access
    """

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CONTRACTOR = "CONTRACTOR"
    UTILITY = "UTILITY"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# Roles allowed to create and dispatch tickets
ROLES_CAN_DISPATCH = frozenset({Role.MANAGER, Role.UTILITY})

# Roles allowed to open and close storm sessions
ROLES_CAN_MANAGE_SESSIONS = frozenset({Role.ADMIN, Role.MANAGER})
