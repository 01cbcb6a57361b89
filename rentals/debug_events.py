"""Per-user trace event broadcaster for following a conversation live.

A ConversationStateMachine can have a DebugBroadcaster attached. Events
(``event_in``, ``transition``, ``criteria``, ``ranked``, ``action``,
``error``) are pushed to every subscriber's asyncio.Queue and kept in a bounded
log per user: the newest ``max_events_per_user`` events for at most
``max_users`` recently active users.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from typing import TypedDict

log = logging.getLogger("rentals.debug_events")

MAX_QUEUE_SIZE = 200
MAX_EVENTS_PER_USER = 200
MAX_TRACKED_USERS = 500


class DebugEvent(TypedDict):
    type: str          # event_in | transition | criteria | ranked | action | error
    timestamp: float
    user_id: str
    state: str         # "<flow>/<step>" when the event was emitted
    data: dict


class DebugBroadcaster:
    """Event broadcaster using asyncio.Queue per subscriber."""

    def __init__(
        self,
        name: str = "rentals",
        max_events_per_user: int = MAX_EVENTS_PER_USER,
        max_users: int = MAX_TRACKED_USERS,
    ) -> None:
        self._name = name
        self._max_events = max_events_per_user
        self._max_users = max_users
        self._subscribers: list[asyncio.Queue[DebugEvent]] = []
        # Least recently active user first; evicted once max_users is exceeded.
        self._event_log: OrderedDict[str, deque[DebugEvent]] = OrderedDict()

    def subscribe(self) -> asyncio.Queue[DebugEvent]:
        """Create a new subscriber queue and return it."""
        q: asyncio.Queue[DebugEvent] = asyncio.Queue(maxsize=MAX_QUEUE_SIZE)
        self._subscribers.append(q)
        log.info("Debug subscriber added to %s (total: %d)", self._name, len(self._subscribers))
        return q

    def unsubscribe(self, q: asyncio.Queue[DebugEvent]) -> None:
        """Remove a subscriber queue."""
        if q in self._subscribers:
            self._subscribers.remove(q)
        log.info("Debug subscriber removed from %s (total: %d)", self._name, len(self._subscribers))

    def emit(self, event_type: str, user_id: str, state: str, data: dict) -> None:
        """Broadcast an event to all subscribers and append to the user's log."""
        event: DebugEvent = {
            "type": event_type,
            "timestamp": time.time(),
            "user_id": user_id,
            "state": state,
            "data": data,
        }
        self._log_event(user_id, event)

        for q in self._subscribers:
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Drop oldest event to make room
                q.get_nowait()
                q.put_nowait(event)

    def _log_event(self, user_id: str, event: DebugEvent) -> None:
        events = self._event_log.get(user_id)
        if events is None:
            events = self._event_log[user_id] = deque(maxlen=self._max_events)
            if len(self._event_log) > self._max_users:
                self._event_log.popitem(last=False)
        else:
            self._event_log.move_to_end(user_id)
        events.append(event)

    def event_log(self, user_id: str) -> list[DebugEvent]:
        """Recent event history for one user, oldest first."""
        return list(self._event_log.get(user_id, []))

    def clear(self, user_id: str) -> None:
        self._event_log.pop(user_id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
