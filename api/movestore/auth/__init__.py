"""Authentication module for the Move Store API.

Bearer API keys resolve to a principal (user id and role). Regular users only
see the records they created; admins see everything and may delete.
"""

from .api_key import (
    Role,
    Principal,
    generate_api_key,
    hash_api_key,
    verify_api_key,
    create_api_key,
    validate_api_key,
    revoke_api_key,
    list_api_keys_for_user
)

from .middleware import (
    AuthenticationMiddleware,
    extract_bearer_token
)

from .dependencies import (
    get_current_principal,
    require_admin,
    CurrentPrincipal,
    AdminPrincipal,
    security
)

__all__ = [
    # API key management
    "Role",
    "Principal",
    "generate_api_key",
    "hash_api_key",
    "verify_api_key",
    "create_api_key",
    "validate_api_key",
    "revoke_api_key",
    "list_api_keys_for_user",

    # Middleware
    "AuthenticationMiddleware",
    "extract_bearer_token",

    # Dependencies
    "get_current_principal",
    "require_admin",
    "CurrentPrincipal",
    "AdminPrincipal",
    "security"
]
