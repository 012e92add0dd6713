"""
Project endpoints, including the project-scoped tag and task collections.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import Principal, get_current_principal
from auth.permissions import get_editable_project_for_user, get_project_for_user
from database import get_db
from query_builder import compile_task_query
from services import projects as project_service
from services import tags as tag_service
from services import tasks as task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def get_task_query_params(
    priority: Optional[List[str]] = Query(None),
    state: Optional[List[str]] = Query(None),
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None),
    due_date_gte: Optional[str] = Query(None, alias="due_date[gte]"),
    due_date_lte: Optional[str] = Query(None, alias="due_date[lte]"),
    due_date_from: Optional[str] = Query(None),
    due_date_to: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    populate: Optional[str] = Query(None),
) -> schemas.TaskQueryParams:
    """
    Collect the raw query string and validate it as TaskQueryParams.

    Values arrive as strings and are typed by the schema so that list
    splitting, case folding and range checks all live in one place.
    """
    raw = {
        "priority": priority,
        "state": state,
        "tags": tags,
        "search": search,
        "due_date_from": due_date_from,
        "due_date_to": due_date_to,
        "offset": offset,
        "limit": limit,
        "sort": sort,
        "populate": populate,
    }
    raw = {key: value for key, value in raw.items() if value is not None}

    due_date = {
        key: value
        for key, value in (("gte", due_date_gte), ("lte", due_date_lte))
        if value is not None
    }
    if due_date:
        raw["due_date"] = due_date

    try:
        return schemas.TaskQueryParams.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Invalid task query: {e}")
        raise RequestValidationError(e.errors())


@router.get("", response_model=List[schemas.Project])
def list_projects(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """List the projects visible to the current user."""
    return project_service.list_projects_for_user(db, principal)


@router.post("", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    project: schemas.ProjectCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create a project owned by the current user."""
    logger.debug(f"User {principal.id} creating project: {project.title}")
    return project_service.create_project(db, project, principal)


@router.get("/{project_id}", response_model=schemas.Project)
def get_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return get_project_for_user(db, project_id, principal)


@router.put("/{project_id}", response_model=schemas.Project)
def update_project(
    project_id: int,
    project: schemas.ProjectCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Replace a project. Only managers and the creator may do this."""
    db_project = get_editable_project_for_user(db, project_id, principal)
    return project_service.update_project(db, db_project, project)


@router.patch("/{project_id}", response_model=schemas.Project)
def patch_project(
    project_id: int,
    project: schemas.ProjectPatch,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_project = get_editable_project_for_user(db, project_id, principal)
    return project_service.patch_project(db, db_project, project)


@router.delete("/{project_id}", response_model=schemas.Project)
def delete_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Delete a project with its tasks and tags, returning the deleted project."""
    db_project = get_project_for_user(db, project_id, principal)
    deleted = schemas.Project.model_validate(db_project)
    project_service.delete_project(db, db_project)
    return deleted


@router.post("/{project_id}/members", response_model=schemas.Project)
def add_project_members(
    project_id: int,
    body: schemas.ProjectMembersAdd,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_project = get_editable_project_for_user(db, project_id, principal)
    return project_service.add_project_members(db, db_project, body.members)


@router.delete("/{project_id}/members/{member_id}", response_model=schemas.Project)
def remove_project_member(
    project_id: int,
    member_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_project = get_editable_project_for_user(db, project_id, principal)
    return project_service.remove_project_member(db, db_project, member_id)


@router.post("/{project_id}/tags", response_model=schemas.Tag, status_code=status.HTTP_201_CREATED)
def create_project_tag(
    project_id: int,
    tag: schemas.TagCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    get_project_for_user(db, project_id, principal)
    return tag_service.create_tag(db, tag.name, project_id)


@router.get("/{project_id}/tags", response_model=List[schemas.Tag])
def list_project_tags(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    get_project_for_user(db, project_id, principal)
    return tag_service.get_tags_for_project(db, project_id)


@router.post("/{project_id}/tasks", response_model=schemas.Task, status_code=status.HTTP_201_CREATED)
def create_project_task(
    project_id: int,
    task: schemas.TaskCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    get_project_for_user(db, project_id, principal)
    return task_service.create_task(db, task, project_id)


@router.get("/{project_id}/tasks")
def list_project_tasks(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    params: schemas.TaskQueryParams = Depends(get_task_query_params),
):
    """
    List tasks of a project with filtering, sorting and pagination.

    The caller must be able to access the project; the query is only
    compiled once that check has passed.
    """
    get_project_for_user(db, project_id, principal)

    task_filter = compile_task_query(params, project_id)
    tasks = task_service.find_tasks(db, task_filter)

    if task_filter.populate:
        return [schemas.TaskPopulated.model_validate(task) for task in tasks]
    return [schemas.Task.model_validate(task) for task in tasks]
