"""
FastAPI Dependencies for Authentication and Authorization.
Resolves the bearer token to a directory profile and gates routes by role.
"""

from typing import List, Optional
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from campusdesk.auth.jwt_handler import verify_token, TokenPayload
from campusdesk.errors import NotFound, PermissionDenied, Unauthorized
from campusdesk.models import UserProfile, UserRole
from campusdesk.storage.repo import CampusRepository
from campusdesk.wiring import get_repo

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """
    Dependency to get current authenticated user from JWT token.

    Raises:
        Unauthorized: If token is missing or invalid
    """
    if credentials is None:
        raise Unauthorized("Authentication required. Please provide a valid token.")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise Unauthorized("Invalid or expired token")

    return payload


async def get_current_profile(
    token: TokenPayload = Depends(get_current_user),
    repo: CampusRepository = Depends(get_repo),
) -> UserProfile:
    """
    Directory profile of the caller.

    The role claim in the token is trusted over the stored one.
    """
    try:
        profile = await repo.get_user(token.user_id)
    except NotFound:
        raise Unauthorized("Unknown user")

    try:
        role = UserRole(token.role)
    except ValueError:
        raise Unauthorized("Unknown role")

    return profile.model_copy(update={"role": role})


def require_role(allowed_roles: List[str]):
    """
    Dependency factory for role-based authorization.

    A caller outside ``allowed_roles`` gets the same 404 as a missing
    resource, so routes do not reveal what exists.

    Usage:
        @router.get("/results")
        async def results(user: UserProfile = Depends(require_role(["ADMIN", "TEACHER"]))):
            ...
    """
    async def role_checker(
        profile: UserProfile = Depends(get_current_profile)
    ) -> UserProfile:
        if profile.role.value not in allowed_roles:
            logger.warning(
                f"Access denied for user {profile.email} with role {profile.role.value}. "
                f"Required roles: {allowed_roles}"
            )
            raise PermissionDenied("not found")
        return profile

    return role_checker


# Convenience role checkers
require_admin = require_role(["ADMIN"])
require_staff = require_role(["ADMIN", "TEACHER"])
require_student = require_role(["STUDENT"])
