"""
Project-level access policy.

Decides whether a principal may see or edit a project, and scopes task and
tag access through the project that owns them. Denials for resources the
caller cannot see are reported as "not found" so that the existence of
other users' projects is not leaked.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from auth.dependencies import Principal
from errors import BadRequestError, NotFoundError
from models import Project, Tag, Task
from services.tasks import get_tasks_for_tag

logger = logging.getLogger(__name__)


class DecisionKind(str, enum.Enum):
    ALLOWED = "allowed"
    HIDDEN_AS_NOT_FOUND = "hidden_as_not_found"
    DENIED_WITH_REASON = "denied_with_reason"


@dataclass(frozen=True)
class AccessDecision:
    kind: DecisionKind
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.kind == DecisionKind.ALLOWED

    def enforce(self, not_found_message: str = "Not Found") -> None:
        """
        Raise the error matching this decision; do nothing when allowed.

        Raises:
            NotFoundError: for HIDDEN_AS_NOT_FOUND, with not_found_message
            BadRequestError: for DENIED_WITH_REASON, with the reason
        """
        if self.kind == DecisionKind.HIDDEN_AS_NOT_FOUND:
            raise NotFoundError(not_found_message)
        if self.kind == DecisionKind.DENIED_WITH_REASON:
            raise BadRequestError(self.reason)


ALLOW = AccessDecision(DecisionKind.ALLOWED)
HIDE = AccessDecision(DecisionKind.HIDDEN_AS_NOT_FOUND)


def deny(reason: str) -> AccessDecision:
    return AccessDecision(DecisionKind.DENIED_WITH_REASON, reason)


def can_access_project(principal: Principal, project: Project) -> AccessDecision:
    """
    Managers see every project; other users see projects they created or
    are members of.
    """
    if principal.is_manager:
        logger.debug(f"User {principal.id} is manager, granting access to project {project.id}")
        return ALLOW
    if project.created_by == principal.id:
        return ALLOW
    if principal.id in project.member_ids:
        return ALLOW

    logger.info(f"User {principal.id} has no access to project {project.id}")
    return HIDE


def can_edit_project(principal: Principal, project: Project) -> AccessDecision:
    """Only managers and the creator may change a project or its members."""
    if principal.is_manager or project.created_by == principal.id:
        return ALLOW

    logger.info(f"User {principal.id} cannot edit project {project.id}")
    return HIDE


def get_project_for_user(db: Session, project_id: int, principal: Principal) -> Project:
    """
    Fetch a project the principal can access.

    Raises:
        NotFoundError: "Project not found" if the project does not exist
            or the principal may not see it
    """
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        logger.debug(f"Project {project_id} does not exist")
        raise NotFoundError("Project not found")

    can_access_project(principal, project).enforce("Project not found")
    return project


def get_editable_project_for_user(db: Session, project_id: int, principal: Principal) -> Project:
    """Like get_project_for_user, but requires edit rights."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        raise NotFoundError("Project not found")

    can_edit_project(principal, project).enforce("Project not found")
    return project


def resolve_project_for_task(db: Session, task: Task, principal: Principal) -> Project:
    """
    Return the project owning task if the principal can access it.

    Raises:
        NotFoundError: "Task not found" when the owning project is hidden
    """
    project = db.query(Project).filter(Project.id == task.project_id).first()
    if project is None:
        raise NotFoundError("Task not found")

    can_access_project(principal, project).enforce("Task not found")
    return project


def resolve_project_for_tag(
    db: Session,
    tag: Tag,
    principal: Principal,
    new_project_id: Optional[int] = None,
) -> Project:
    """
    Return the project owning tag if the principal can access it.

    When new_project_id is given (the tag is being moved), the destination
    project must be accessible as well. Both checks complete before the
    caller mutates anything.

    Raises:
        NotFoundError: "Tag not found" for the current project,
            "Project not found" for the destination
    """
    project = db.query(Project).filter(Project.id == tag.project_id).first()
    if project is None:
        raise NotFoundError("Tag not found")
    can_access_project(principal, project).enforce("Tag not found")

    if new_project_id is not None and new_project_id != tag.project_id:
        get_project_for_user(db, new_project_id, principal)

    return project


def check_no_task_uses_tag(db: Session, tag_id: int) -> AccessDecision:
    """Deny when any task still references the tag."""
    tasks = get_tasks_for_tag(db, tag_id)
    if tasks:
        logger.info(f"Tag {tag_id} is used by task(s) {[task.id for task in tasks]}")
        return deny("Tag is used by a task")
    return ALLOW
