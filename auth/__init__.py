# Auth module for the Campaign Ledger
# Provides role-based access control and authentication decorators

from auth.roles import (
    UserType,
    Permission,
    ROLE_PERMISSIONS,
    get_permissions_for_role,
    has_permission,
    has_any_permission,
)

from auth.decorators import (
    AuthError,
    require_user_type,
    require_permission,
    get_user_type,
)

from auth.dependencies import (
    create_access_token,
    decode_access_token,
    get_current_user,
)

__all__ = [
    # Roles
    "UserType",
    "Permission",
    "ROLE_PERMISSIONS",
    "get_permissions_for_role",
    "has_permission",
    "has_any_permission",

    # Decorators
    "AuthError",
    "require_user_type",
    "require_permission",
    "get_user_type",

    # Tokens
    "create_access_token",
    "decode_access_token",
    "get_current_user",
]
