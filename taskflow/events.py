"""In-process change feed for real-time subscriptions.

Sessions collect the ``(user_id, kind)`` pairs they touch while flushing and
publish them once the transaction commits; rolled-back work is dropped.
Subscribers are plain callables invoked synchronously after commit. Ordering
across kinds is best-effort and there is no versioning: the latest event wins.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from itertools import chain

from sqlalchemy import event
from sqlalchemy.orm import Session

from .models import Project, Tag, Task, UserProfile

log = logging.getLogger(__name__)

FEED_KEY = "change_feed"
_PENDING_KEY = "taskflow_pending_changes"

TASKS = "tasks"
PROJECTS = "projects"
TAGS = "tags"
PROFILE = "profile"


@dataclass(frozen=True)
class ChangeEvent:
    user_id: str
    kind: str
    ids: frozenset[str]


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Fan-out of committed changes to per-user, per-kind subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[tuple[str, str], list[Subscriber]] = defaultdict(list)

    def subscribe(self, user_id: str, kind: str, callback: Subscriber) -> Callable[[], None]:
        key = (user_id, kind)
        self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[key]

        return unsubscribe

    def subscriber_count(self, user_id: str, kind: str) -> int:
        return len(self._subscribers.get((user_id, kind), ()))

    def publish(self, change: ChangeEvent) -> None:
        for callback in list(self._subscribers.get((change.user_id, change.kind), ())):
            try:
                callback(change)
            except Exception:
                # One broken listener must not starve the others.
                log.exception("Change subscriber failed for %s/%s", change.user_id, change.kind)


def mark_changed(session, user_id: str, kind: str, obj_id=None) -> None:
    """Record a change the ORM cannot see, e.g. a bulk UPDATE statement."""
    pending = session.info.setdefault(_PENDING_KEY, defaultdict(set))
    ids = pending[(user_id, kind)]
    if obj_id is not None:
        ids.add(str(obj_id))


def _describe(obj) -> tuple[str, str] | None:
    if isinstance(obj, Task):
        return obj.user_id, TASKS
    if isinstance(obj, Project):
        return obj.user_id, PROJECTS
    if isinstance(obj, Tag):
        return obj.user_id, TAGS
    if isinstance(obj, UserProfile):
        return obj.id, PROFILE
    return None


@event.listens_for(Session, "before_flush")
def _collect_changes(session, flush_context, instances) -> None:
    for obj in chain(session.new, session.dirty, session.deleted):
        described = _describe(obj)
        if described is None:
            continue
        user_id, kind = described
        mark_changed(session, user_id, kind, getattr(obj, "id", None))


@event.listens_for(Session, "after_commit")
def _publish_changes(session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    feed = session.info.get(FEED_KEY)
    if not pending or feed is None:
        return
    for (user_id, kind), ids in pending.items():
        feed.publish(ChangeEvent(user_id=user_id, kind=kind, ids=frozenset(ids)))


@event.listens_for(Session, "after_rollback")
def _discard_changes(session) -> None:
    session.info.pop(_PENDING_KEY, None)
