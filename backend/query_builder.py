"""
Task query compiler.

Turns validated task listing parameters plus the project id taken from the
URL into a TaskFilter: a plain predicate dict, pagination, an ordered list of
sort fields and a populate descriptor. The repository layer
(services.tasks.find_tasks) is the only consumer of the result.

Predicate shape (keys are task fields):
    {"project": 3,
     "priority": {"in": [TaskPriority.HIGH]},
     "tags": {"in": [1, 2]},
     "title": {"icontains": "report"},
     "due_date": {"gte": datetime(...), "lte": datetime(...)}}

This module performs no I/O and never touches the database.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from schemas import TaskQueryParams

logger = logging.getLogger(__name__)

POPULATE_FIELDS = ["assignee", "tags"]


class SortDirection(str, enum.Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass
class TaskFilter:
    query: Dict[str, Any]
    pagination: Dict[str, int] = field(default_factory=dict)
    sort: Optional[Dict[str, SortDirection]] = None
    populate: Union[bool, List[str]] = False


def compile_task_query(params: TaskQueryParams, project_id: int) -> TaskFilter:
    """
    Compile task listing parameters into a TaskFilter scoped to project_id.

    Args:
        params: validated query parameters (None fields are treated as absent)
        project_id: id of the project from the request path

    Returns:
        TaskFilter whose query always contains project == project_id
    """
    query: Dict[str, Any] = {"project": project_id}

    for name in ("priority", "state", "tags"):
        values = getattr(params, name)
        if values:
            query[name] = {"in": list(values)}

    if params.search:
        query["title"] = {"icontains": params.search}

    due_range = _compile_due_date_range(params)
    if due_range:
        query["due_date"] = due_range

    pagination: Dict[str, int] = {}
    if params.offset is not None:
        pagination["offset"] = params.offset
    if params.limit is not None:
        pagination["limit"] = params.limit

    task_filter = TaskFilter(
        query=query,
        pagination=pagination,
        sort=parse_sort(params.sort),
        populate=list(POPULATE_FIELDS) if params.populate is True else False,
    )
    logger.debug(f"Compiled task query for project {project_id}: {task_filter}")
    return task_filter


def _compile_due_date_range(params: TaskQueryParams) -> Dict[str, Any]:
    # Explicit from/to parameters win over the bracketed due_date[gte]/[lte] form
    nested = params.due_date
    lower = params.due_date_from
    if lower is None and nested is not None:
        lower = nested.gte
    upper = params.due_date_to
    if upper is None and nested is not None:
        upper = nested.lte

    bounds: Dict[str, Any] = {}
    if lower is not None:
        bounds["gte"] = lower
    if upper is not None:
        bounds["lte"] = upper
    return bounds


def parse_sort(sort: Optional[str]) -> Optional[Dict[str, SortDirection]]:
    """
    Parse a sort string such as "title,-due_date".

    A leading "-" sorts descending; a leading "+" or no prefix sorts
    ascending. Field order is preserved; a repeated field keeps its first
    position but takes its last direction. Returns None when nothing is left
    to sort by.

    Example:
        >>> parse_sort("title,-due_date")
        {'title': <SortDirection.ASCENDING: 'ascending'>, 'due_date': <SortDirection.DESCENDING: 'descending'>}
    """
    if not sort:
        return None

    result: Dict[str, SortDirection] = {}
    for segment in sort.split(","):
        segment = segment.strip()
        direction = SortDirection.ASCENDING
        if segment.startswith("-"):
            direction = SortDirection.DESCENDING
            segment = segment[1:]
        elif segment.startswith("+"):
            segment = segment[1:]
        segment = segment.strip()
        if not segment:
            continue
        result[segment] = direction

    return result or None
