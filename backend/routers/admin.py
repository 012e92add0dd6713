"""
Operational and user management endpoints guarded by HTTP Basic auth.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import config
import schemas
from auth.dependencies import verify_basic_auth
from database import get_db
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"], dependencies=[Depends(verify_basic_auth)])


@router.get("/health")
def health_check():
    return {"status": "OK"}


@router.get("/version")
def get_version():
    return {"version": config.APP_VERSION}


@router.post("/admin/users", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    """Create a user with explicit roles (e.g. a manager)."""
    logger.info(f"Admin creating user {user.email} with roles {[role.value for role in user.roles]}")
    return user_service.create_user(
        db,
        email=user.email,
        password=user.password,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=user.roles,
    )


@router.get("/admin/users/{user_id}", response_model=schemas.User)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id)
