"""
Cookie consent view-model.

``CookieConsentHook`` exposes the consent state a banner needs and keeps it
current: local state is loaded once per mount without touching the
network, and local/server state is reconciled again every time the user's
authentication status changes.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from megainvest.consent.events import ConsentChangeEvent
from megainvest.consent.reconcile import reconcile
from megainvest.consent.service import CookieConsentService
from megainvest.consent.types import CookieCategory, CookieConsentPreferences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HookState:
    has_consent: bool = False
    preferences: CookieConsentPreferences = CookieConsentPreferences()
    should_show_banner: bool = False
    is_loading: bool = True


StateListener = Callable[[HookState], None]


class CookieConsentHook:
    def __init__(self, service: CookieConsentService):
        self.service = service
        self.state = HookState()
        self._listeners: list[StateListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._local_loaded = False
        self._reconciled_auth: bool | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> None:
        if self.mounted:
            return
        self._unsubscribe = self.service.subscribe(self._handle_consent_change)
        self._local_loaded = False
        self._reconciled_auth = None

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def watch(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every update."""
        self._listeners.append(listener)

        def unwatch() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unwatch

    async def sync(self, is_authenticated: bool, is_auth_loading: bool = False) -> HookState:
        """
        Bring the state up to date for the current authentication status.

        Call on mount and whenever ``is_authenticated`` or
        ``is_auth_loading`` change.
        """
        if not self._local_loaded:
            self._load_local()
            self._local_loaded = True

        if is_auth_loading:
            return self.state

        if is_authenticated != self._reconciled_auth:
            self._reconciled_auth = is_authenticated
            if is_authenticated:
                await self._reconcile_with_server()

        self._set_state(should_show_banner=self.service.should_show_banner())
        return self.state

    def _load_local(self) -> None:
        try:
            self._set_state(
                has_consent=self.service.has_consent(),
                preferences=self.service.get_preferences(),
                should_show_banner=self.service.should_show_banner(),
                is_loading=False,
            )
        except Exception:
            logger.exception("Error initializing cookie consent; showing the banner")
            self._set_state(should_show_banner=True, is_loading=False)

    async def _reconcile_with_server(self) -> None:
        remote = await self.service.fetch_server_consent()
        outcome = reconcile(
            local=self.service.get_preferences(),
            local_has_consent=self.service.has_consent(),
            remote=remote,
            is_authenticated=True,
        )
        if outcome.adopt_server and remote.consent is not None:
            await self.service.adopt_server_consent(remote.consent)
        elif outcome.push_local:
            await self.service.push_local_consent()
        elif not remote.available:
            logger.info("Cookie consent server unavailable; keeping local preferences")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def accept_all(self) -> None:
        await self.service.accept_all()

    async def reject_all(self) -> None:
        await self.service.reject_all()

    async def save_preferences(self, preferences: CookieConsentPreferences) -> None:
        await self.service.save_consent(preferences)

    async def clear_consent(self) -> None:
        await self.service.clear_consent()

    def is_category_enabled(self, category_id: str) -> bool:
        return self.state.preferences.is_enabled(category_id)

    def get_categories(self) -> list[CookieCategory]:
        return self.service.get_categories()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _handle_consent_change(self, event: ConsentChangeEvent) -> None:
        self._set_state(
            preferences=event.preferences,
            has_consent=self.service.has_consent(),
            should_show_banner=self.service.should_show_banner(),
            is_loading=False,
        )

    def _set_state(self, **changes) -> None:
        new_state = replace(self.state, **changes)
        if new_state == self.state:
            return
        self.state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Cookie consent state listener failed")
