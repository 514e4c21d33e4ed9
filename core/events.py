"""
Event log helper

Every ledger mutation writes one EventLog row inside the same transaction,
so the audit trail can never disagree with the ledger.
"""
from decimal import Decimal
from uuid import UUID
from typing import Any, Optional

from sqlalchemy.orm import Session

from models import EventLog


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if hasattr(value, "value"):  # enums
        return value.value
    return value


def record_event(
    db: Session,
    event_type: str,
    table_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None,
    actor_id: Optional[str] = None,
    **data: Any
) -> EventLog:
    event = EventLog(
        event_type=event_type,
        table_id=table_id,
        group_id=group_id,
        actor_id=actor_id,
        data={key: _jsonable(value) for key, value in data.items()},
    )
    db.add(event)
    return event
