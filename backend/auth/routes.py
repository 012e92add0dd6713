"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration
- Login (JWT access token issuance)
"""

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

import schemas
from database import get_db
from errors import UnauthorizedError
from models import Role
from auth.security import access_token_lifetime_seconds, create_access_token, verify_password
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS_MESSAGE = "Invalid email/password combination"


# Request/Response schemas
class RegisterRequest(schemas.UserBase):
    password: str = Field(..., min_length=8, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginResponse(BaseModel):
    token: str
    expires_in: str


@router.post("/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account with the ROLE_USER role.

    Raises:
        ConflictError: 409 if the email is already registered
    """
    logger.info(f"Registration attempt for email: {request.email}")
    return user_service.create_user(
        db,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        roles=[Role.ROLE_USER],
    )


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same error.

    Raises:
        UnauthorizedError: 401 on bad credentials
    """
    logger.info(f"Login attempt for email: {request.email}")

    user = user_service.get_user_by_email(db, request.email)
    if user is None:
        logger.info(f"Login failed: user not found: {request.email}")
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    if not verify_password(request.password, user.password_hash):
        logger.info(f"Login failed: invalid password: {request.email}")
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    token = create_access_token({"sub": str(user.id)})
    logger.info(f"User logged in: {user.email} (ID: {user.id})")
    return LoginResponse(token=token, expires_in=f"{access_token_lifetime_seconds()} seconds")
