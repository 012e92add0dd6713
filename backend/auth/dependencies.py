"""
FastAPI dependencies for authentication.

This module provides dependency functions that can be used in route handlers to:
- Extract and validate the current user from a JWT bearer token
- Build the immutable Principal used by the access policy
- Guard the admin endpoints with HTTP Basic auth
"""

import logging
import secrets
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials, HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

import config
from database import get_db
from models import Role, User
from auth.security import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)
basic_security = HTTPBasic(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: a user id and the roles held at request time."""
    id: int
    roles: FrozenSet[Role]

    @property
    def is_manager(self) -> bool:
        return Role.ROLE_MANAGER in self.roles

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        roles = set()
        for role in user.roles or []:
            try:
                roles.add(Role(role))
            except ValueError:
                logger.warning(f"Ignoring unknown role '{role}' on user {user.id}")
        return cls(id=user.id, roles=frozenset(roles))


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from a JWT bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired,
            or refers to a user that no longer exists
    """
    if not credentials or not credentials.credentials:
        logger.info("No authentication credentials provided")
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        logger.info(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("Invalid token type")

    # Malformed tokens should return 401, not 500
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.info(f"Invalid user_id format in token: {payload.get('sub')}")
        raise _unauthorized("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise _unauthorized("User not found")

    logger.debug(f"User authenticated via JWT: {user.email}")
    return user


def get_current_principal(current_user: User = Depends(get_current_user)) -> Principal:
    """
    Principal for the authenticated user.

    Roles are read from the stored user, not from the token, so a role
    change takes effect on the next request.
    """
    return Principal.from_user(current_user)


def verify_basic_auth(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_security),
) -> None:
    """
    Guard for admin endpoints.

    Any username is accepted; the password must equal BASIC_SECRET.
    """
    if credentials is None or not secrets.compare_digest(
        credentials.password.encode("utf-8"), config.BASIC_SECRET.encode("utf-8")
    ):
        logger.info("Basic auth rejected for admin endpoint")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )
