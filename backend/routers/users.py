from fastapi import APIRouter, Depends

import schemas
from auth.dependencies import get_current_user
from models import User

router = APIRouter(tags=["users"])


@router.get("/me", response_model=schemas.User)
@router.get("/users/me", response_model=schemas.User)
def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user
