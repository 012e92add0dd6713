"""Endpoints acting on a single task. Access is scoped through the task's project."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import Principal, get_current_principal
from auth.permissions import resolve_project_for_task
from database import get_db
from errors import BadRequestError
from models import Task, TaskState
from services import tasks as task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_accessible_task(db: Session, task_id: int, principal: Principal) -> Task:
    task = task_service.get_task(db, task_id)
    resolve_project_for_task(db, task, principal)
    return task


@router.get("/{task_id}", response_model=schemas.Task)
def get_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return _get_accessible_task(db, task_id, principal)


@router.patch("/{task_id}", response_model=schemas.Task)
def patch_task(
    task_id: int,
    task: schemas.TaskPatch,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_task = _get_accessible_task(db, task_id, principal)
    return task_service.patch_task(db, db_task, task)


@router.post("/{task_id}/state/{state}", response_model=schemas.Task)
def set_task_state(
    task_id: int,
    state: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Move a task to OPEN, IN_PROGRESS or CLOSED (case-insensitive)."""
    try:
        new_state = TaskState(state.upper())
    except ValueError:
        raise BadRequestError(f"Invalid task state: {state}")
    db_task = _get_accessible_task(db, task_id, principal)
    return task_service.set_task_state(db, db_task, new_state)


@router.delete("/{task_id}", response_model=schemas.Task)
def delete_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Delete a task and return it as it was before deletion."""
    db_task = _get_accessible_task(db, task_id, principal)
    deleted = schemas.Task.model_validate(db_task)
    task_service.delete_task(db, db_task)
    return deleted


@router.post("/{task_id}/tags/{tag_id}", response_model=List[int])
def add_task_tag(
    task_id: int,
    tag_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_task = _get_accessible_task(db, task_id, principal)
    return task_service.add_task_tag(db, db_task, tag_id)


@router.delete("/{task_id}/tags/{tag_id}", response_model=List[int])
def remove_task_tag(
    task_id: int,
    tag_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    db_task = _get_accessible_task(db, task_id, principal)
    return task_service.remove_task_tag(db, db_task, tag_id)
