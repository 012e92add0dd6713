from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional, List

from models import ProjectStatus, Role, TaskPriority, TaskState
from time_utils import as_utc, is_in_future


def _split_csv(value):
    """
    Accept "A,B", ["A,B", "C"] or ["A", "B"] and return a flat list of
    non-empty, stripped items. None stays None (parameter absent).
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    items = []
    for entry in value:
        if isinstance(entry, str):
            items.extend(part.strip() for part in entry.split(",") if part.strip())
        else:
            items.append(entry)
    return items


def _upper(value):
    return value.upper() if isinstance(value, str) else value


def _future_date(value: Optional[datetime], field_name: str) -> Optional[datetime]:
    if value is None:
        return None
    if not is_in_future(value):
        raise ValueError(f"{field_name} must be in the future")
    return as_utc(value)


# User schemas
class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)


class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=100)
    roles: List[Role] = Field(default_factory=lambda: [Role.ROLE_USER])


class User(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    roles: List[Role] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


# Project schemas
class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    start_date: datetime
    end_date: Optional[datetime] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    members: List[int] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return _upper(value)

    @field_validator("start_date")
    @classmethod
    def start_date_in_future(cls, value):
        return _future_date(value, "Start date")

    @field_validator("end_date")
    @classmethod
    def end_date_in_future(cls, value):
        return _future_date(value, "End date")


class ProjectPatch(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[ProjectStatus] = None
    members: Optional[List[int]] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return _upper(value)

    @field_validator("start_date")
    @classmethod
    def start_date_in_future(cls, value):
        return _future_date(value, "Start date")

    @field_validator("end_date")
    @classmethod
    def end_date_in_future(cls, value):
        return _future_date(value, "End date")


class ProjectMembersAdd(BaseModel):
    members: List[int] = Field(default_factory=list)


class Project(BaseModel):
    id: int
    title: str
    description: str
    start_date: datetime
    end_date: Optional[datetime] = None
    status: ProjectStatus
    created_by: int
    members: List[int] = Field(default_factory=list, validation_alias="member_ids")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


# Tag schemas
class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TagPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    project: Optional[int] = None


class Tag(BaseModel):
    id: int
    name: str
    project: int = Field(validation_alias="project_id")

    class Config:
        from_attributes = True
        populate_by_name = True


# Task schemas
class TaskBase(BaseModel):
    due_date: Optional[datetime] = None

    @field_validator("priority", "state", mode="before", check_fields=False)
    @classmethod
    def normalize_enums(cls, value):
        # Enum values are accepted case-insensitively ("high" -> HIGH)
        return _upper(value)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value):
        return as_utc(value)


class TaskCreate(TaskBase):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TaskPriority = TaskPriority.MEDIUM
    state: TaskState = TaskState.OPEN
    assignee: Optional[int] = None
    tags: List[int] = Field(default_factory=list)


class TaskPatch(TaskBase):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    priority: Optional[TaskPriority] = None
    state: Optional[TaskState] = None
    assignee: Optional[int] = None
    tags: Optional[List[int]] = None


class Task(BaseModel):
    id: int
    title: str
    description: str
    due_date: Optional[datetime] = None
    priority: TaskPriority
    state: TaskState
    project: int = Field(validation_alias="project_id")
    assignee: Optional[int] = Field(None, validation_alias="assignee_id")
    tags: List[int] = Field(default_factory=list, validation_alias="tag_ids")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class TaskPopulated(BaseModel):
    """Task with assignee and tags expanded into full objects."""
    id: int
    title: str
    description: str
    due_date: Optional[datetime] = None
    priority: TaskPriority
    state: TaskState
    project: int = Field(validation_alias="project_id")
    assignee: Optional[UserSummary] = None
    tags: List[Tag] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


# Task query schemas
class DueDateRange(BaseModel):
    gte: Optional[datetime] = None
    lte: Optional[datetime] = None

    @field_validator("gte", "lte")
    @classmethod
    def bounds_utc(cls, value):
        return as_utc(value)


class TaskQueryParams(BaseModel):
    """
    Validated query string for task listing.

    Every field is optional and None means "not supplied". An empty list is
    kept distinct from None so callers can tell the two apart, although the
    query compiler treats both the same way. There is no
    `project` field: the project scope always comes from the URL path.
    """
    priority: Optional[List[TaskPriority]] = None
    state: Optional[List[TaskState]] = None
    tags: Optional[List[int]] = None
    search: Optional[str] = None
    due_date: Optional[DueDateRange] = None
    due_date_from: Optional[datetime] = None
    due_date_to: Optional[datetime] = None
    offset: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=1, le=500)
    sort: Optional[str] = None
    populate: Optional[bool] = None

    @field_validator("priority", "state", mode="before")
    @classmethod
    def split_enum_list(cls, value):
        items = _split_csv(value)
        return None if items is None else [_upper(item) for item in items]

    @field_validator("tags", mode="before")
    @classmethod
    def split_tag_list(cls, value):
        return _split_csv(value)

    @field_validator("due_date_from", "due_date_to")
    @classmethod
    def range_utc(cls, value):
        return as_utc(value)
