# Role-Based Access Control for the Campaign Ledger
# This module defines user roles and permissions for campaign management

from enum import Enum
from typing import List, Set


class UserType(str, Enum):
    """User types on the platform."""
    BRAND = "brand"
    CREATOR = "creator"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained permissions for the platform."""

    # Brand permissions
    CREATE_CAMPAIGNS = "create_campaigns"
    MANAGE_CAMPAIGNS = "manage_campaigns"
    INVITE_CREATORS = "invite_creators"
    CANCEL_CAMPAIGNS = "cancel_campaigns"

    # Creator permissions
    RESPOND_TO_INVITATIONS = "respond_to_invitations"
    SUBMIT_DELIVERABLES = "submit_deliverables"

    # Common permissions
    VIEW_CAMPAIGNS = "view_campaigns"
    NEGOTIATE = "negotiate"
    VIEW_NOTIFICATIONS = "view_notifications"

    # Admin permissions
    RUN_LIFECYCLE_SWEEPS = "run_lifecycle_sweeps"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserType, Set[Permission]] = {
    UserType.BRAND: {
        # Brand-specific
        Permission.CREATE_CAMPAIGNS,
        Permission.MANAGE_CAMPAIGNS,
        Permission.INVITE_CREATORS,
        Permission.CANCEL_CAMPAIGNS,
        # Common
        Permission.VIEW_CAMPAIGNS,
        Permission.NEGOTIATE,
        Permission.VIEW_NOTIFICATIONS,
    },

    UserType.CREATOR: {
        # Creator-specific
        Permission.RESPOND_TO_INVITATIONS,
        Permission.SUBMIT_DELIVERABLES,
        # Common
        Permission.VIEW_CAMPAIGNS,
        Permission.NEGOTIATE,
        Permission.VIEW_NOTIFICATIONS,
    },

    UserType.ADMIN: {
        # Admin has ALL permissions
        *Permission.__members__.values()
    },
}


def get_permissions_for_role(user_type: UserType) -> Set[Permission]:
    """Get all permissions for a given user type."""
    return ROLE_PERMISSIONS.get(user_type, set())


def has_permission(user_type: UserType, permission: Permission) -> bool:
    """Check if a user type has a specific permission."""
    return permission in get_permissions_for_role(user_type)


def has_any_permission(user_type: UserType, permissions: List[Permission]) -> bool:
    """Check if a user type has any of the given permissions."""
    user_permissions = get_permissions_for_role(user_type)
    return any(p in user_permissions for p in permissions)
