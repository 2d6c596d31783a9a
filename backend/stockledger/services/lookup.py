# Overview: Shared existence checks used by services before any mutation.

from __future__ import annotations

import uuid
from typing import TypeVar

from ..extensions import db
from ..validation import NotFoundError
from .concurrency import lock_for_update

ModelT = TypeVar("ModelT")


def require_entity(model: type[ModelT], entity_id: uuid.UUID | None, label: str, *, lock: bool = False) -> ModelT:
    """
    Load a row by primary key or raise NotFoundError.

    lock=True takes a row lock for the rest of the transaction (ignored on SQLite).
    """
    if entity_id is None:
        raise NotFoundError(label)
    query = db.session.query(model).filter_by(id=entity_id)
    if lock:
        query = lock_for_update(query)
    entity = query.first()
    if entity is None:
        raise NotFoundError(label, entity_id)
    return entity


def require_optional_entity(model: type[ModelT], entity_id: uuid.UUID | None, label: str) -> ModelT | None:
    if entity_id is None:
        return None
    return require_entity(model, entity_id, label)
