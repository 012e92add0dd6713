"""
Project persistence.

Callers resolve the project through auth.permissions first; these helpers
assume the principal is already allowed to perform the operation.
"""

import logging
from typing import Iterable, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import Principal
from errors import BadRequestError, NotFoundError
from models import Project, User
from services.users import get_users

logger = logging.getLogger(__name__)


def _fetch_members(db: Session, member_ids: Iterable[int]) -> List[User]:
    try:
        return get_users(db, member_ids)
    except NotFoundError:
        raise BadRequestError("One or more members do not exist")


def create_project(db: Session, data: schemas.ProjectCreate, principal: Principal) -> Project:
    members = _fetch_members(db, data.members)

    project = Project(
        title=data.title,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        status=data.status,
        created_by=principal.id,
        members=members,
    )
    db.add(project)
    db.commit()
    db.refresh(project)

    logger.info(f"Project created: {project.title} (ID: {project.id}) by user {principal.id}")
    return project


def list_projects_for_user(db: Session, principal: Principal) -> List[Project]:
    """Managers get every project; other users get those they created or belong to."""
    query = db.query(Project)
    if not principal.is_manager:
        query = query.filter(
            or_(
                Project.created_by == principal.id,
                Project.members.any(User.id == principal.id),
            )
        )
    return query.order_by(Project.id).all()


def update_project(db: Session, project: Project, data: schemas.ProjectCreate) -> Project:
    """Replace every editable field. An omitted end_date clears it."""
    members = _fetch_members(db, data.members)

    project.title = data.title
    project.description = data.description
    project.start_date = data.start_date
    project.end_date = data.end_date
    project.status = data.status
    project.members = members

    db.commit()
    db.refresh(project)
    logger.info(f"Project {project.id} replaced")
    return project


def patch_project(db: Session, project: Project, data: schemas.ProjectPatch) -> Project:
    """Apply only the supplied, non-null fields."""
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    members = None
    if "members" in updates:
        members = _fetch_members(db, updates.pop("members"))

    for field_name, value in updates.items():
        setattr(project, field_name, value)
    if members is not None:
        project.members = members

    db.commit()
    db.refresh(project)
    logger.info(f"Project {project.id} patched: {sorted(data.model_fields_set)}")
    return project


def delete_project(db: Session, project: Project) -> None:
    # Tasks and tags go with the project
    project_id = project.id
    db.delete(project)
    db.commit()
    logger.info(f"Project {project_id} deleted")


def add_project_members(db: Session, project: Project, member_ids: Iterable[int]) -> Project:
    """Add members; ids that are already members are left as they are."""
    new_members = _fetch_members(db, member_ids)
    existing = set(project.member_ids)
    for member in new_members:
        if member.id not in existing:
            project.members.append(member)

    db.commit()
    db.refresh(project)
    logger.info(f"Project {project.id} members now: {project.member_ids}")
    return project


def remove_project_member(db: Session, project: Project, member_id: int) -> Project:
    """
    Raises:
        NotFoundError: "User not found" if member_id is not a member
    """
    member = next((m for m in project.members if m.id == member_id), None)
    if member is None:
        raise NotFoundError("User not found")

    project.members.remove(member)
    db.commit()
    db.refresh(project)
    logger.info(f"User {member_id} removed from project {project.id}")
    return project
