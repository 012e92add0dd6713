"""
Task persistence and the translation of compiled TaskFilters into SQL.

Access to the owning project is checked by the caller (see
auth.permissions.resolve_project_for_task); nothing here looks at the
principal.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Query, Session, selectinload

import schemas
from errors import BadRequestError, ConflictError, NotFoundError
from models import Tag, Task, TaskPriority, TaskState, User, task_tags
from query_builder import SortDirection, TaskFilter

logger = logging.getLogger(__name__)

PRIORITY_RANK = {TaskPriority.LOW: 0, TaskPriority.MEDIUM: 1, TaskPriority.HIGH: 2}
STATE_RANK = {TaskState.OPEN: 0, TaskState.IN_PROGRESS: 1, TaskState.CLOSED: 2}


def _rank_expression(column, ranks):
    """CASE expression ordering enum values by rank instead of by name."""
    return case(*[(column == value, rank) for value, rank in ranks.items()], else_=len(ranks))


SORTABLE_COLUMNS = {
    "title": Task.title,
    "description": Task.description,
    "due_date": Task.due_date,
    "priority": _rank_expression(Task.priority, PRIORITY_RANK),
    "state": _rank_expression(Task.state, STATE_RANK),
    "id": Task.id,
}

LIKE_ESCAPE = "\\"


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _apply_predicate(query: Query, predicate: Dict[str, Any]) -> Query:
    for field_name, condition in predicate.items():
        if field_name == "project":
            query = query.filter(Task.project_id == condition)
        elif field_name == "priority":
            query = query.filter(Task.priority.in_(condition["in"]))
        elif field_name == "state":
            query = query.filter(Task.state.in_(condition["in"]))
        elif field_name == "tags":
            # Matches tasks carrying at least one of the tags
            query = query.filter(Task.tags.any(Tag.id.in_(condition["in"])))
        elif field_name == "title":
            pattern = f"%{_escape_like(condition['icontains'])}%"
            query = query.filter(Task.title.ilike(pattern, escape=LIKE_ESCAPE))
        elif field_name == "due_date":
            if "gte" in condition:
                query = query.filter(Task.due_date >= condition["gte"])
            if "lte" in condition:
                query = query.filter(Task.due_date <= condition["lte"])
        else:
            raise ValueError(f"Unsupported task filter field: {field_name}")
    return query


def _apply_sort(query: Query, sort: Optional[Dict[str, SortDirection]]) -> Query:
    order_by = []
    for field_name, direction in (sort or {}).items():
        column = SORTABLE_COLUMNS.get(field_name)
        if column is None:
            logger.debug(f"Ignoring unsortable field '{field_name}'")
            continue
        order_by.append(column.desc() if direction == SortDirection.DESCENDING else column.asc())
    # Stable order for pagination
    order_by.append(Task.id.asc())
    return query.order_by(*order_by)


def find_tasks(db: Session, task_filter: TaskFilter) -> List[Task]:
    """Run a compiled TaskFilter against the tasks table."""
    query = _apply_predicate(db.query(Task), task_filter.query)
    query = _apply_sort(query, task_filter.sort)

    if task_filter.populate:
        query = query.options(selectinload(Task.assignee), selectinload(Task.tags))

    pagination = task_filter.pagination
    if pagination.get("offset") is not None:
        query = query.offset(pagination["offset"])
    if pagination.get("limit") is not None:
        query = query.limit(pagination["limit"])

    tasks = query.all()
    logger.debug(f"find_tasks matched {len(tasks)} task(s)")
    return tasks


def _check_assignee(db: Session, assignee_id: int) -> None:
    if db.query(User.id).filter(User.id == assignee_id).first() is None:
        raise BadRequestError("Assignee does not exist")


def _fetch_project_tags(db: Session, tag_ids: Iterable[int], project_id: int) -> List[Tag]:
    unique_ids = list(dict.fromkeys(tag_ids))
    if not unique_ids:
        return []
    tags = (
        db.query(Tag)
        .filter(Tag.id.in_(unique_ids), Tag.project_id == project_id)
        .all()
    )
    if len(tags) != len(unique_ids):
        logger.info(f"Tags {unique_ids} not all found in project {project_id}")
        raise BadRequestError("Tag does not exist")
    by_id = {tag.id: tag for tag in tags}
    return [by_id[tag_id] for tag_id in unique_ids]


def create_task(db: Session, data: schemas.TaskCreate, project_id: int) -> Task:
    """
    Raises:
        BadRequestError: unknown assignee, or a tag outside the project
    """
    if data.assignee is not None:
        _check_assignee(db, data.assignee)
    tags = _fetch_project_tags(db, data.tags, project_id)

    task = Task(
        title=data.title,
        description=data.description,
        due_date=data.due_date,
        priority=data.priority,
        state=data.state,
        project_id=project_id,
        assignee_id=data.assignee,
        tags=tags,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(f"Task created: {task.title} (ID: {task.id}) in project {project_id}")
    return task


def get_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def get_tasks_for_tag(db: Session, tag_id: int) -> List[Task]:
    return (
        db.query(Task)
        .join(task_tags, task_tags.c.task_id == Task.id)
        .filter(task_tags.c.tag_id == tag_id)
        .order_by(Task.id)
        .all()
    )


def patch_task(db: Session, task: Task, data: schemas.TaskPatch) -> Task:
    """Apply the supplied, non-null fields. A tags list replaces the current tags."""
    updates = data.model_dump(exclude_unset=True, exclude_none=True)

    if "assignee" in updates:
        _check_assignee(db, updates["assignee"])
        task.assignee_id = updates.pop("assignee")
    if "tags" in updates:
        task.tags = _fetch_project_tags(db, updates.pop("tags"), task.project_id)

    for field_name, value in updates.items():
        setattr(task, field_name, value)

    db.commit()
    db.refresh(task)
    logger.info(f"Task {task.id} patched: {sorted(data.model_fields_set)}")
    return task


def set_task_state(db: Session, task: Task, state: TaskState) -> Task:
    previous = task.state
    task.state = state
    db.commit()
    db.refresh(task)
    logger.info(f"Task {task.id} state changed: {previous} -> {state}")
    return task


def delete_task(db: Session, task: Task) -> None:
    task_id = task.id
    db.delete(task)
    db.commit()
    logger.info(f"Task {task_id} deleted")


def add_task_tag(db: Session, task: Task, tag_id: int) -> List[int]:
    """
    Attach a tag of the task's project and return the task's tag ids.

    Raises:
        ConflictError: the tag is already attached
        BadRequestError: the tag does not exist in the task's project
    """
    if tag_id in task.tag_ids:
        raise ConflictError("Tag already assigned")

    (tag,) = _fetch_project_tags(db, [tag_id], task.project_id)
    task.tags.append(tag)
    db.commit()
    db.refresh(task)
    logger.info(f"Tag {tag_id} added to task {task.id}")
    return task.tag_ids


def remove_task_tag(db: Session, task: Task, tag_id: int) -> List[int]:
    """
    Detach a tag and return the task's remaining tag ids.

    Raises:
        BadRequestError: the tag is not attached to the task
    """
    tag = next((t for t in task.tags if t.id == tag_id), None)
    if tag is None:
        raise BadRequestError("Tag does not exist")

    task.tags.remove(tag)
    db.commit()
    db.refresh(task)
    logger.info(f"Tag {tag_id} removed from task {task.id}")
    return task.tag_ids
