# Authentication module for CampusDesk
# Bearer-token identity and role checks

from campusdesk.auth.jwt_handler import TokenPayload, create_access_token, verify_token
from campusdesk.auth.dependencies import (
    get_current_user,
    get_current_profile,
    require_role,
    require_admin,
    require_staff,
    require_student,
)

__all__ = [
    "TokenPayload", "create_access_token", "verify_token",
    "get_current_user", "get_current_profile", "require_role",
    "require_admin", "require_staff", "require_student",
]
