from __future__ import annotations

from collections.abc import Generator

from fastapi import Header, HTTPException
from services.api.app.db.database import db_session
from services.api.app.services.auth import Actor, actor_from_claims
from sqlalchemy.orm import Session


def get_db() -> Generator[Session, None, None]:
    db = db_session()
    try:
        yield db
    finally:
        db.close()


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    # Identity is asserted by the gateway in front of this service.
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing actor headers")

    try:
        return actor_from_claims(x_actor_id, x_actor_role)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
