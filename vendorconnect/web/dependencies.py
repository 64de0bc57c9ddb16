"""
FastAPI dependencies: database, principal resolution and service factories.

Routes never build services themselves, so tests can swap any of these
through app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Depends, Header

from ..ai import ActionExecutor, SmartTaskAssistant
from ..database import get_database, Database, UserStatusEnum
from ..database.repositories import UserRepository
from ..exceptions import AuthorizationError, ValidationError
from ..services import (
    Principal,
    TaskLifecycleManager,
    ReportingService,
    ReferenceService,
    get_event_bus,
)

logger = logging.getLogger(__name__)


def get_db() -> Database:
    return get_database()


async def get_principal(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Database = Depends(get_db),
) -> Principal:
    """Resolve the caller from the X-User-Id header."""
    if x_user_id is None or not x_user_id.strip():
        raise ValidationError(
            "The X-User-Id header is required.",
            errors={"X-User-Id": ["The X-User-Id header is required."]},
        )
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise ValidationError(
            "The X-User-Id header must be an integer.",
            errors={"X-User-Id": ["The X-User-Id header must be an integer."]},
        )

    async with db.session() as session:
        user = await UserRepository(session).get(user_id)

    if user is None or user.status != UserStatusEnum.ACTIVE.value:
        logger.warning(f"Rejected request from unknown or inactive user {user_id}")
        raise AuthorizationError("Unknown or inactive user")
    return Principal.from_user(user)


def get_lifecycle(db: Database = Depends(get_db)) -> TaskLifecycleManager:
    return TaskLifecycleManager(db, bus=get_event_bus())


def get_reporting(db: Database = Depends(get_db)) -> ReportingService:
    return ReportingService(db)


def get_reference_service(db: Database = Depends(get_db)) -> ReferenceService:
    return ReferenceService(db)


def get_assistant(
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    reporting: ReportingService = Depends(get_reporting),
) -> SmartTaskAssistant:
    return SmartTaskAssistant(ActionExecutor(lifecycle, reporting))
