"""
Tests for the project access policy (auth/permissions.py).
"""

import pytest
from sqlalchemy.orm import Session

import models
from auth.dependencies import Principal
from auth.permissions import (
    DecisionKind,
    can_access_project,
    can_edit_project,
    check_no_task_uses_tag,
    get_project_for_user,
    resolve_project_for_tag,
    resolve_project_for_task,
)
from errors import BadRequestError, NotFoundError

OWNER_ID = 10
MEMBER_ID = 20
STRANGER_ID = 30
MANAGER_ID = 40


def principal(user_id: int, *roles: models.Role) -> Principal:
    return Principal(id=user_id, roles=frozenset(roles or [models.Role.ROLE_USER]))


@pytest.fixture
def detached_project() -> models.Project:
    member = models.User(id=MEMBER_ID, email="m@test.com", password_hash="x", first_name="M", last_name="M")
    return models.Project(id=1, title="P", description="D", created_by=OWNER_ID, members=[member])


# ============== Pure decisions ==============


@pytest.mark.parametrize(
    "who",
    [
        principal(OWNER_ID),
        principal(MEMBER_ID),
        principal(MANAGER_ID, models.Role.ROLE_MANAGER),
    ],
    ids=["creator", "member", "manager"],
)
def test_access_allowed(detached_project, who):
    assert can_access_project(who, detached_project).allowed


def test_access_hidden_for_stranger(detached_project):
    decision = can_access_project(principal(STRANGER_ID), detached_project)

    assert decision.kind == DecisionKind.HIDDEN_AS_NOT_FOUND
    with pytest.raises(NotFoundError) as exc_info:
        decision.enforce("Project not found")
    assert exc_info.value.message == "Project not found"


def test_manager_role_alongside_user_role(detached_project):
    who = principal(STRANGER_ID, models.Role.ROLE_USER, models.Role.ROLE_MANAGER)

    assert can_access_project(who, detached_project).allowed


def test_member_cannot_edit(detached_project):
    assert can_edit_project(principal(OWNER_ID), detached_project).allowed
    assert can_edit_project(principal(MANAGER_ID, models.Role.ROLE_MANAGER), detached_project).allowed
    assert not can_edit_project(principal(MEMBER_ID), detached_project).allowed


# ============== Database-backed checks ==============


def test_get_project_for_user_missing_project(test_db: Session, owner_user):
    with pytest.raises(NotFoundError) as exc_info:
        get_project_for_user(test_db, 12345, Principal.from_user(owner_user))
    assert exc_info.value.message == "Project not found"


def test_get_project_for_user_hidden(test_db: Session, project, outsider_user):
    with pytest.raises(NotFoundError):
        get_project_for_user(test_db, project.id, Principal.from_user(outsider_user))


def test_get_project_for_user_member(test_db: Session, project, member_user):
    assert get_project_for_user(test_db, project.id, Principal.from_user(member_user)).id == project.id


def test_resolve_project_for_task_uses_task_message(test_db: Session, task, outsider_user):
    with pytest.raises(NotFoundError) as exc_info:
        resolve_project_for_task(test_db, task, Principal.from_user(outsider_user))
    assert exc_info.value.message == "Task not found"


def test_resolve_project_for_tag_checks_destination(
    test_db: Session, tag, owner_user, other_project
):
    with pytest.raises(NotFoundError) as exc_info:
        resolve_project_for_tag(test_db, tag, Principal.from_user(owner_user), new_project_id=other_project.id)
    assert exc_info.value.message == "Project not found"


def test_resolve_project_for_tag_hidden_source(test_db: Session, tag, outsider_user, other_project):
    with pytest.raises(NotFoundError) as exc_info:
        resolve_project_for_tag(test_db, tag, Principal.from_user(outsider_user), new_project_id=other_project.id)
    assert exc_info.value.message == "Tag not found"


def test_tag_in_use_is_denied(test_db: Session, tag, task):
    assert check_no_task_uses_tag(test_db, tag.id).allowed

    task.tags.append(tag)
    test_db.commit()

    decision = check_no_task_uses_tag(test_db, tag.id)
    assert decision.kind == DecisionKind.DENIED_WITH_REASON
    with pytest.raises(BadRequestError) as exc_info:
        decision.enforce()
    assert exc_info.value.message == "Tag is used by a task"


def test_principal_ignores_unknown_roles(owner_user, test_db: Session):
    owner_user.roles = ["ROLE_USER", "ROLE_SUPERHERO"]
    test_db.commit()

    assert Principal.from_user(owner_user).roles == frozenset({models.Role.ROLE_USER})
