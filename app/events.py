from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

logger = logging.getLogger("app.events")

BRANCH_UPDATED = "branch.updated"
COMPLAINT_CREATED = "complaint.created"
COMPLAINT_UPDATED = "complaint.updated"


@dataclass(frozen=True, slots=True)
class EntityEvent:
    name: str
    entity: str
    record: Any
    request_id: str | None = None


EventHandler = Callable[[Session, EntityEvent], None]


class PostCommitHooks:
    """Handlers run after a mutation has committed.

    A failing handler is logged and skipped; it never reaches the caller,
    so the committed mutation stands.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        if handler not in self._handlers[event_name]:
            self._handlers[event_name].append(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def handlers(self, event_name: str) -> list[EventHandler]:
        return list(self._handlers.get(event_name, ()))

    def emit(self, db: Session, event: EntityEvent) -> int:
        failures = 0
        for handler in self.handlers(event.name):
            try:
                handler(db, event)
            except Exception:
                failures += 1
                db.rollback()
                logger.exception(
                    "post_commit_hook_failed",
                    extra={
                        "event": event.name,
                        "entity": event.entity,
                        "record_id": getattr(event.record, "id", None),
                        "handler": getattr(handler, "__name__", repr(handler)),
                        "request_id": event.request_id,
                    },
                )
        return failures


hooks = PostCommitHooks()


def emit(db: Session, name: str, entity: str, record: Any, *, request_id: str | None = None) -> int:
    return hooks.emit(db, EntityEvent(name=name, entity=entity, record=record, request_id=request_id))
