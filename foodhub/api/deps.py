"""
Request Dependencies

Identity and role guards plus the per-role profile resolvers used by the
routers.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.core.exceptions import AuthenticationError, AuthorizationError
from foodhub.core.security import decode_access_token
from foodhub.database import get_db
from foodhub.models import ApprovalState, Restaurant, User, UserRole
from foodhub.services.catalog import get_restaurant_by_owner

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: No token, a bad token, or a user that no longer exists
        AuthorizationError: The account is not accepted
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized, no token")

    payload = decode_access_token(credentials.credentials)

    user = await db.get(User, payload["id"])
    if user is None:
        raise AuthenticationError("Not authorized, user not found")

    if user.approval != ApprovalState.ACCEPTED:
        raise AuthorizationError(f"Your account is {user.approval.value}. Access denied.")

    request.state.user = user
    request.state.user_type = user.user_type
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory limiting a route group to the given roles."""

    async def role_guard(user: User = Depends(get_current_user)) -> User:
        if user.user_type not in roles:
            raise AuthorizationError(
                f"User role {user.user_type.value} is not authorized to access this route"
            )
        return user

    return role_guard


require_admin = require_roles(UserRole.ADMIN)
require_restaurant_owner = require_roles(UserRole.RESTAURANT)
require_customer = require_roles(UserRole.CUSTOMER)


async def get_owned_restaurant(
    user: User = Depends(require_restaurant_owner),
    db: AsyncSession = Depends(get_db),
) -> Optional[Restaurant]:
    """The caller's restaurant, or None before the profile is created."""
    return await get_restaurant_by_owner(db, user.id)


async def require_restaurant(
    restaurant: Optional[Restaurant] = Depends(get_owned_restaurant),
) -> Restaurant:
    if restaurant is None:
        raise AuthorizationError(
            "Restaurant profile incomplete. Please create your restaurant profile first."
        )
    return restaurant
