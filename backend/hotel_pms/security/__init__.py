# Security module
from hotel_pms.security.auth import (
    get_password_hash, verify_password, create_access_token,
    get_current_user, require_permission
)
from hotel_pms.security.permissions import authorize, ROLE_POLICY

__all__ = [
    'get_password_hash', 'verify_password', 'create_access_token',
    'get_current_user', 'require_permission', 'authorize', 'ROLE_POLICY'
]
