"""
Session-keyed publish/subscribe relay for realtime progress.

Delivery is best-effort and at-most-once to whoever is subscribed at publish
time; nothing is buffered for late joiners, who read history from the store.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Protocol

from app.core.logger import get_logger

log = get_logger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class EventBroadcaster:
    def __init__(self) -> None:
        self._channels: Dict[str, List[Subscriber]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def subscribe(self, session_id: str, subscriber: Subscriber) -> None:
        async with self._lock_for(session_id):
            subs = self._channels.setdefault(session_id, [])
            if not any(s is subscriber for s in subs):
                subs.append(subscriber)

    async def unsubscribe(self, session_id: str, subscriber: Subscriber) -> None:
        async with self._lock_for(session_id):
            self._remove(session_id, subscriber)

    async def unsubscribe_all(self, subscriber: Subscriber) -> None:
        for session_id in list(self._channels):
            await self.unsubscribe(session_id, subscriber)

    def _remove(self, session_id: str, subscriber: Subscriber) -> None:
        subs = self._channels.get(session_id)
        if subs is None:
            return
        subs[:] = [s for s in subs if s is not subscriber]
        if not subs:
            self._channels.pop(session_id, None)

    def subscriber_count(self, session_id: str) -> int:
        return len(self._channels.get(session_id, []))

    async def publish(self, session_id: str, event: str, payload: Dict[str, Any]) -> int:
        """Send ``{"event", "data"}`` to every current subscriber of the session.

        Publishes on one channel are serialized so subscribers see them in
        publish order. A subscriber whose send fails is dropped. Returns the
        number of successful deliveries.
        """
        message = {"event": event, "data": payload}
        delivered = 0
        async with self._lock_for(session_id):
            for sub in list(self._channels.get(session_id, [])):
                try:
                    await sub.send_json(message)
                    delivered += 1
                except Exception as e:
                    log.warning("Dropping subscriber on %s after failed %s send: %s", session_id, event, e)
                    self._remove(session_id, sub)
        return delivered
