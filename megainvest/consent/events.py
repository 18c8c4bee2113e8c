"""
Consent-changed notifications.

A small observer list: the banner, the preferences panel and any
analytics gating code subscribe here instead of holding references to each
other.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from megainvest.consent.types import CookieConsentPreferences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsentChangeEvent:
    preferences: CookieConsentPreferences
    cleared: bool = False


ConsentListener = Callable[[ConsentChangeEvent], None]


class ConsentEventBus:
    def __init__(self):
        self._listeners: list[ConsentListener] = []

    def subscribe(self, listener: ConsentListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: ConsentChangeEvent) -> None:
        # Snapshot so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Cookie consent listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._listeners)
