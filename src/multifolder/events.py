"""Observer registration for membership changes.

Delivery is fire-and-forget: subscribers run synchronously after the
transaction commits, and a subscriber that raises is reported as a
RuntimeWarning without affecting the mutation or other subscribers.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable

from multifolder.db.models import MembershipEvent

Subscriber = Callable[[MembershipEvent], None]


class EventBus:
    """Explicit subscriber list owned by one MembershipStore."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* and return a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: MembershipEvent) -> None:
        """Deliver *event* to every subscriber in registration order."""
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as exc:  # noqa: BLE001
                warnings.warn(
                    f"Membership subscriber {getattr(callback, '__name__', callback)!s} "
                    f"failed on {event.kind.value} for attachment {event.attachment_id}: {exc}",
                    RuntimeWarning,
                    stacklevel=2,
                )

    def __len__(self) -> int:
        return len(self._subscribers)
