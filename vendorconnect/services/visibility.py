"""
Role and visibility filter.

A Principal is resolved once per request and passed explicitly into
every service call. `scope()` turns it into a SQLAlchemy predicate for
an entity kind; `strip_pii()` shapes serialized payloads for non-admins.
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple, Any

from sqlalchemy import select, or_, true, false, ColumnElement

from ..database.models import (
    RoleEnum,
    TaskDB,
    UserDB,
    ProjectDB,
    ClientDB,
    task_client,
)

logger = logging.getLogger(__name__)

PII_FIELDS = ("email", "phone", "address", "dob", "date_of_birth")


@dataclass(frozen=True)
class Principal:
    """The caller of an operation: identity, role names and tenant."""
    user_id: int
    roles: Tuple[str, ...] = field(default_factory=tuple)
    tenant_id: int = 0

    def has_role(self, role: RoleEnum) -> bool:
        return role.value in self.roles

    @property
    def is_admin(self) -> bool:
        """Admins and sub-admins see everything within the tenant."""
        return self.has_role(RoleEnum.ADMIN) or self.has_role(RoleEnum.SUB_ADMIN)

    @property
    def is_requester(self) -> bool:
        return self.has_role(RoleEnum.REQUESTER)

    @property
    def is_tasker(self) -> bool:
        return self.has_role(RoleEnum.TASKER)

    @classmethod
    def from_user(cls, user: UserDB) -> "Principal":
        tenant_id = user.admin_id if user.admin_id is not None else user.id
        return cls(user_id=user.id, roles=tuple(user.roles or ()), tenant_id=tenant_id)


def _task_scope(principal: Principal) -> ColumnElement:
    assigned = TaskDB.users.any(UserDB.id == principal.user_id)
    if principal.is_admin:
        return true()
    if principal.is_requester:
        return or_(TaskDB.created_by == principal.user_id, assigned)
    if principal.is_tasker:
        return assigned
    return false()


def _project_scope(principal: Principal) -> ColumnElement:
    member = ProjectDB.users.any(UserDB.id == principal.user_id)
    if principal.is_admin:
        return true()
    if principal.is_requester:
        return or_(ProjectDB.created_by == principal.user_id, member)
    if principal.is_tasker:
        return member
    return false()


def _client_scope(principal: Principal) -> ColumnElement:
    if principal.is_admin:
        return true()
    visible_task_ids = select(TaskDB.id).where(_task_scope(principal))
    linked = select(task_client.c.client_id).where(task_client.c.task_id.in_(visible_task_ids))
    return ClientDB.id.in_(linked)


def _user_scope(principal: Principal) -> ColumnElement:
    # Everyone may see the tenant roster; PII is stripped on the way out
    if principal.is_admin or principal.is_requester or principal.is_tasker:
        return true()
    return UserDB.id == principal.user_id


_SCOPES = {
    "task": _task_scope,
    "project": _project_scope,
    "client": _client_scope,
    "user": _user_scope,
}


def scope(principal: Principal, kind: str) -> ColumnElement:
    """Predicate narrowing `kind` rows to what the principal may see."""
    try:
        builder = _SCOPES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind}")
    return builder(principal)


def can_see_task(principal: Principal, task: TaskDB) -> bool:
    """In-memory equivalent of scope(principal, 'task') for a loaded task."""
    if principal.is_admin:
        return True
    assigned = any(user.id == principal.user_id for user in task.users)
    if principal.is_requester:
        return task.created_by == principal.user_id or assigned
    if principal.is_tasker:
        return assigned
    return False


def can_modify_task(principal: Principal, task: TaskDB) -> bool:
    """Requesters must own the task, taskers must be assigned to it."""
    if principal.is_admin:
        return True
    assigned = any(user.id == principal.user_id for user in task.users)
    if principal.is_requester and task.created_by == principal.user_id:
        return True
    if principal.is_tasker and assigned:
        return True
    return False


def strip_pii(payload: Any, principal: Principal) -> Any:
    """
    Remove personally identifying fields from nested user and client objects.

    Applied to already-serialized payloads. Top-level task fields are left
    alone; only dicts nested under other dicts or lists are scrubbed.
    """
    if principal.is_admin:
        return payload
    return _strip(payload, nested=False)


def _strip(value: Any, nested: bool) -> Any:
    if isinstance(value, list):
        return [_strip(item, nested=True) for item in value]
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            if nested and key in PII_FIELDS:
                continue
            cleaned[key] = _strip(item, nested=True)
        return cleaned
    return value
