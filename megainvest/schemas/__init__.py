from .cookie_consent import (
    AdminConsentItem,
    ConsentAnalyticsResponse,
    ConsentPreferencesSchema,
    CookieConsentOut,
    DeleteCookieConsentResponse,
    GetCookieConsentResponse,
    StoreCookieConsentRequest,
    StoreCookieConsentResponse,
)

# Define the public API of this module
__all__ = [
    "AdminConsentItem",
    "ConsentAnalyticsResponse",
    "ConsentPreferencesSchema",
    "CookieConsentOut",
    "DeleteCookieConsentResponse",
    "GetCookieConsentResponse",
    "StoreCookieConsentRequest",
    "StoreCookieConsentResponse",
]
