import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import Principal, get_current_principal
from auth.permissions import check_no_task_uses_tag, resolve_project_for_tag
from database import get_db
from services import tags as tag_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tags", tags=["tags"])


@router.patch("/{tag_id}", response_model=schemas.Tag)
def patch_tag(
    tag_id: int,
    tag: schemas.TagPatch,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Rename a tag and/or move it to another project.

    Moving requires access to both the current and the destination project.
    """
    db_tag = tag_service.get_tag(db, tag_id)
    resolve_project_for_tag(db, db_tag, principal, new_project_id=tag.project)
    return tag_service.patch_tag(db, db_tag, name=tag.name, project_id=tag.project)


@router.delete("/{tag_id}", response_model=schemas.Tag)
def delete_tag(
    tag_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Delete a tag that no task uses any more."""
    db_tag = tag_service.get_tag(db, tag_id)
    resolve_project_for_tag(db, db_tag, principal)
    check_no_task_uses_tag(db, tag_id).enforce("Tag not found")

    deleted = schemas.Tag.model_validate(db_tag)
    tag_service.delete_tag(db, db_tag)
    return deleted
