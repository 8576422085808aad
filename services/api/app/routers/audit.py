from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from packages.shared.schemas.events import EventV1
from services.api.app.db.deps import get_actor, get_db
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.audit import list_events
from services.api.app.services.auth import Actor, require_admin
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/events", response_model=list[EventV1])
def get_events(
    entity_id: str,
    limit: int = Query(default=200, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[EventV1]:
    try:
        require_admin(actor)
    except Exception as e:
        raise_http_error(e)

    return [
        EventV1(
            id=ev.id,
            actor_id=ev.actor_id,
            entity_type=ev.entity_type,
            entity_id=ev.entity_id,
            event_type=ev.event_type,
            payload=ev.event_payload_json or {},
            created_at=ev.created_at.isoformat(),
        )
        for ev in list_events(db, entity_id, limit=limit)
    ]
