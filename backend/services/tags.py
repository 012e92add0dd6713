"""Tag persistence. Name uniqueness per project is left to the database constraint."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import ConflictError, NotFoundError, is_duplicate_error
from models import Tag

logger = logging.getLogger(__name__)

DUPLICATE_TAG_MESSAGE = "Tag name already exists for this project"


def _commit_tag(db: Session, tag: Tag) -> Tag:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_duplicate_error(e):
            logger.warning(f"Duplicate tag name '{tag.name}' in project {tag.project_id} - conflict")
            raise ConflictError(DUPLICATE_TAG_MESSAGE)
        raise
    db.refresh(tag)
    return tag


def create_tag(db: Session, name: str, project_id: int) -> Tag:
    """
    Raises:
        ConflictError: when the project already has a tag with this name
    """
    tag = Tag(name=name, project_id=project_id)
    db.add(tag)
    tag = _commit_tag(db, tag)
    logger.info(f"Tag created: {tag.name} (ID: {tag.id}) in project {project_id}")
    return tag


def get_tag(db: Session, tag_id: int) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id).first()
    if tag is None:
        raise NotFoundError("Tag not found")
    return tag


def get_tags_for_project(db: Session, project_id: int) -> List[Tag]:
    return db.query(Tag).filter(Tag.project_id == project_id).order_by(Tag.id).all()


def patch_tag(db: Session, tag: Tag, name: Optional[str] = None, project_id: Optional[int] = None) -> Tag:
    """Rename and/or move a tag. Access to both projects must be checked first."""
    if name is not None:
        tag.name = name
    if project_id is not None:
        tag.project_id = project_id
    tag = _commit_tag(db, tag)
    logger.info(f"Tag {tag.id} patched: name={tag.name}, project={tag.project_id}")
    return tag


def delete_tag(db: Session, tag: Tag) -> None:
    tag_id = tag.id
    db.delete(tag)
    db.commit()
    logger.info(f"Tag {tag_id} deleted")
