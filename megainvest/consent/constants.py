"""
Cookie consent constants shared by the client store, service and presenters.
"""

from enum import Enum


class CookieCategoryId(str, Enum):
    """The fixed set of cookie-purpose buckets."""

    STRICTLY_NECESSARY = "strictly_necessary"
    FUNCTIONAL = "functional"
    ANALYTICS = "analytics"
    MARKETING = "marketing"


STORAGE_KEY = "megaInvestCookieConsent"
PREFERENCES_KEY = "megaInvestCookiePreferences"
SESSION_KEY = "megaInvestConsentSessionId"

CONSENT_VERSION = "1.0"
EXPIRY_DAYS = 365

MS_PER_DAY = 24 * 60 * 60 * 1000

# Path of the consent resource relative to the API base url
CONSENT_ENDPOINT = "/cookie-consent"
