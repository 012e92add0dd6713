"""User persistence helpers shared by registration and the admin endpoints."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.security import hash_password
from errors import ConflictError, InternalServerError, NotFoundError, is_duplicate_error
from models import Role, User

logger = logging.getLogger(__name__)


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    roles: Optional[Iterable[Role]] = None,
) -> User:
    """
    Create a user with a hashed password.

    Raises:
        ConflictError: "Email already exists" when the email is taken
    """
    role_values = [Role(role).value for role in (roles or [Role.ROLE_USER])]
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        roles=role_values,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_duplicate_error(e):
            logger.warning(f"Duplicate email - conflict: {email}")
            raise ConflictError("Email already exists")
        logger.error(f"Error creating user {email}: {e}")
        raise InternalServerError("Error creating user")
    db.refresh(user)

    logger.info(f"User created: {user.email} (ID: {user.id}, roles: {role_values})")
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_users(db: Session, user_ids: Iterable[int]) -> List[User]:
    """
    Load users by id, preserving the given order and dropping duplicates.

    Raises:
        NotFoundError: if any id does not match a user
    """
    unique_ids = list(dict.fromkeys(user_ids))
    if not unique_ids:
        return []

    users = db.query(User).filter(User.id.in_(unique_ids)).all()
    by_id = {user.id: user for user in users}
    missing = [user_id for user_id in unique_ids if user_id not in by_id]
    if missing:
        logger.info(f"Unknown user ids: {missing}")
        raise NotFoundError("User not found")
    return [by_id[user_id] for user_id in unique_ids]
