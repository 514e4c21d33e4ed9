"""
Notification dispatch: fire-and-forget group signals

The ledger announces group join/leave events here and moves on. Delivery
(inbox, email, push) belongs to whatever handlers are registered; a failing
handler is logged and never fails the request that triggered it.
"""
from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)

GROUP_MEMBER_JOINED = "group.member_joined"
GROUP_MEMBER_LEFT = "group.member_left"

Handler = Callable[[str, Dict[str, Any]], None]


class NotificationDispatcher:
    def __init__(self):
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def dispatch(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Deliver an event to every handler

        Returns:
            number of handlers that completed without raising
        """
        logger.info(f"Notification {event}: {payload}")
        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event, payload)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Notification handler {getattr(handler, '__name__', handler)} "
                    f"failed for {event}: {e}",
                    exc_info=True
                )
        return delivered


dispatcher = NotificationDispatcher()


def notify(event: str, **payload: Any) -> int:
    return dispatcher.dispatch(event, payload)
