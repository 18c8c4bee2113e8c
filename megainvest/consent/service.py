"""
GDPR-compliant Cookie Consent Service

Single authority for consent state transitions. Every change is written to
the local store first; the server is then updated on a best-effort basis
in a background task whose failure never undoes the local change. Remote
calls are queued, so they reach the server in the order they were made.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from megainvest.consent import constants
from megainvest.consent.config import ConsentClientSettings
from megainvest.consent.events import ConsentChangeEvent, ConsentEventBus, ConsentListener
from megainvest.consent.store import ConsentStore, JsonFileStorage, MemoryStorage
from megainvest.consent.transport import ConsentTransport, HttpConsentTransport, TokenProvider
from megainvest.consent.types import (
    DEFAULT_CATEGORIES,
    ConsentRecord,
    CookieCategory,
    CookieConsentPreferences,
    RemoteConsent,
    ServerConsent,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class CookieConsentService:
    def __init__(
        self,
        store: ConsentStore,
        transport: ConsentTransport | None = None,
        events: ConsentEventBus | None = None,
        version: str = constants.CONSENT_VERSION,
        expiry_days: int = constants.EXPIRY_DAYS,
        clock: Clock = epoch_millis,
        categories: tuple[CookieCategory, ...] = DEFAULT_CATEGORIES,
    ):
        self.store = store
        self.transport = transport
        self.events = events if events is not None else ConsentEventBus()
        self.version = version
        self.expiry_days = expiry_days
        self.clock = clock
        self.categories = categories
        self._pending: set[asyncio.Task] = set()
        self._last_sync: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ConsentClientSettings | None = None,
        token_provider: TokenProvider | None = None,
        transport: ConsentTransport | None = None,
    ) -> "CookieConsentService":
        """Build a service from ``COOKIE_CONSENT_*`` settings."""
        settings = settings or ConsentClientSettings()
        storage = JsonFileStorage(settings.storage_path) if settings.storage_path else MemoryStorage()
        store = ConsentStore(
            storage,
            storage_key=settings.storage_key,
            preferences_key=settings.preferences_key,
            session_key=settings.session_key,
        )
        if transport is None and settings.api_base_url:
            transport = HttpConsentTransport(
                settings.api_base_url,
                token_provider=token_provider,
                timeout=settings.request_timeout,
            )
        return cls(store, transport=transport, version=settings.version, expiry_days=settings.expiry_days)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_consent_data(self) -> ConsentRecord | None:
        return self.store.read()

    def has_consent(self) -> bool:
        consent = self.get_consent_data()
        return consent is not None and consent.has_consented

    def is_consent_valid(self) -> bool:
        """False once the retention window elapsed or the policy version changed."""
        consent = self.get_consent_data()
        if consent is None:
            return False
        expiry_time = consent.timestamp + self.expiry_days * constants.MS_PER_DAY
        return self.clock() < expiry_time and consent.version == self.version

    def should_show_banner(self) -> bool:
        return not self.has_consent() or not self.is_consent_valid()

    def get_preferences(self) -> CookieConsentPreferences:
        consent = self.get_consent_data()
        if consent is None:
            return CookieConsentPreferences.necessary_only()
        return consent.categories.with_necessary()

    def get_categories(self) -> list[CookieCategory]:
        preferences = self.get_preferences()
        return [
            category.with_enabled(category.required or preferences.is_enabled(category.id))
            for category in self.categories
        ]

    def is_category_enabled(self, category_id: str) -> bool:
        return self.get_preferences().is_enabled(category_id)

    def subscribe(self, listener: ConsentListener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    async def save_consent(self, preferences: CookieConsentPreferences) -> ConsentRecord:
        """
        Record a consent decision.

        The local write is the success criterion: the server update runs in
        the background and the change event fires exactly once whatever its
        outcome.
        """
        record = ConsentRecord(
            version=self.version,
            timestamp=self.clock(),
            has_consented=True,
            categories=preferences.with_necessary(),
        )
        self.store.write(record)
        logger.info(
            "Cookie consent saved: functional=%s analytics=%s marketing=%s",
            record.categories.functional,
            record.categories.analytics,
            record.categories.marketing,
        )

        self._spawn(self.save_consent_to_server(record.categories, timestamp=record.timestamp))
        self.events.emit(ConsentChangeEvent(preferences=record.categories))
        return record

    async def accept_all(self) -> ConsentRecord:
        return await self.save_consent(CookieConsentPreferences.all_granted())

    async def reject_all(self) -> ConsentRecord:
        return await self.save_consent(CookieConsentPreferences.necessary_only())

    async def clear_consent(self) -> None:
        """Forget the local decision; the server copy is removed on a best-effort basis."""
        self.store.clear()
        logger.info("Cookie consent cleared")
        self._spawn(self.delete_consent_from_server())
        self.events.emit(ConsentChangeEvent(preferences=CookieConsentPreferences.necessary_only(), cleared=True))

    async def adopt_server_consent(self, consent: ServerConsent) -> ConsentRecord:
        """Replace the local record with the server's, keeping its version and timestamp."""
        record = ConsentRecord(
            version=consent.version,
            timestamp=consent.timestamp,
            has_consented=True,
            categories=consent.preferences.with_necessary(),
        )
        self.store.write(record)
        logger.info(f"Adopted server cookie consent {consent.id}")
        self.events.emit(ConsentChangeEvent(preferences=record.categories))
        return record

    # ------------------------------------------------------------------
    # Remote sync (never raises)
    # ------------------------------------------------------------------

    async def save_consent_to_server(
        self,
        preferences: CookieConsentPreferences,
        timestamp: int | None = None,
        version: str | None = None,
    ) -> bool:
        if self.transport is None:
            return False

        payload: dict[str, Any] = {
            "preferences": preferences.with_necessary().as_dict(),
            "version": version or self.version,
            "timestamp": timestamp if timestamp is not None else self.clock(),
            "sessionId": self.store.session_id(),
        }
        try:
            await self.transport.save_consent(payload)
        except Exception as e:
            logger.warning(f"Failed to sync cookie consent to server: {e}")
            return False
        logger.debug("Cookie consent synced to server")
        return True

    async def push_local_consent(self) -> bool:
        """Send the stored record, unchanged, to the server after any queued sync."""
        record = self.get_consent_data()
        if record is None or not record.has_consented:
            return False
        return await self._spawn(
            self.save_consent_to_server(record.categories, timestamp=record.timestamp, version=record.version)
        )

    async def delete_consent_from_server(self) -> bool:
        if self.transport is None:
            return False
        try:
            await self.transport.delete_consent(self.store.session_id())
        except Exception as e:
            logger.warning(f"Failed to delete cookie consent on server: {e}")
            return False
        return True

    async def fetch_server_consent(self) -> RemoteConsent:
        """Read the server record once every queued sync has been sent."""
        if self.transport is None:
            return RemoteConsent.unavailable()
        return await self._spawn(self._fetch_server_consent())

    async def _fetch_server_consent(self) -> RemoteConsent:
        try:
            consent = await self.transport.fetch_consent()
        except Exception as e:
            logger.warning(f"Failed to fetch cookie consent from server: {e}")
            return RemoteConsent.unavailable()
        if consent is None:
            return RemoteConsent.missing()
        return RemoteConsent.found(consent)

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        """
        Schedule a remote call behind every call scheduled before it.

        The server sees saves and deletes in the order they were made locally.
        """
        task = asyncio.ensure_future(self._run_after(self._last_sync, coro))
        self._last_sync = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    async def _run_after(previous: asyncio.Task | None, coro: Awaitable[Any]) -> Any:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        return await coro

    @property
    def pending_syncs(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait for every background sync started so far."""
        while self._pending:
            pending = list(self._pending)
            await asyncio.gather(*pending, return_exceptions=True)
            self._pending.difference_update(pending)
