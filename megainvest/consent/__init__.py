"""
Cookie consent client: local store, remote sync, change events and presenters.
"""

from megainvest.consent.banner import BannerTexts, ConsentBanner, ConsentLinks, PreferencesPanel, manage_preferences
from megainvest.consent.config import ConsentClientSettings
from megainvest.consent.errors import ConsentSyncError
from megainvest.consent.events import ConsentChangeEvent, ConsentEventBus
from megainvest.consent.hook import CookieConsentHook, HookState
from megainvest.consent.reconcile import Reconciliation, reconcile
from megainvest.consent.service import CookieConsentService
from megainvest.consent.store import ConsentStore, JsonFileStorage, KeyValueStorage, MemoryStorage
from megainvest.consent.transport import ConsentTransport, HttpConsentTransport
from megainvest.consent.types import (
    DEFAULT_CATEGORIES,
    ConsentRecord,
    CookieCategory,
    CookieConsentPreferences,
    RemoteConsent,
    ServerConsent,
)

__all__ = [
    "BannerTexts",
    "ConsentBanner",
    "ConsentChangeEvent",
    "ConsentClientSettings",
    "ConsentEventBus",
    "ConsentLinks",
    "ConsentRecord",
    "ConsentStore",
    "ConsentSyncError",
    "ConsentTransport",
    "CookieCategory",
    "CookieConsentHook",
    "CookieConsentPreferences",
    "CookieConsentService",
    "DEFAULT_CATEGORIES",
    "HookState",
    "HttpConsentTransport",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "PreferencesPanel",
    "Reconciliation",
    "RemoteConsent",
    "ServerConsent",
    "manage_preferences",
    "reconcile",
]
