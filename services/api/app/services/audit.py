from __future__ import annotations

from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.models import EventLog
from services.api.app.services.clock import Clock
from sqlalchemy.orm import Session


def log_event(
    db: Session,
    *,
    actor_id: str | None,
    entity_type: EntityTypeV1,
    entity_id: str,
    event_type: EventTypeV1,
    event_payload: dict,
    clock: Clock,
) -> None:
    db.add(
        EventLog(
            id=uuid4().hex,
            actor_id=actor_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
            event_type=event_type.value,
            event_payload_json=event_payload,
            created_at=clock.now(),
        )
    )


def list_events(db: Session, entity_id: str, limit: int = 200) -> list[EventLog]:
    return (
        db.query(EventLog)
        .filter(EventLog.entity_id == entity_id)
        .order_by(EventLog.created_at.asc())
        .limit(limit)
        .all()
    )
