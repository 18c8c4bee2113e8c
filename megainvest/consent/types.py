"""
Value types of the consent client.

Preferences are a closed record of the four cookie categories rather than a
free-form mapping; ``strictly_necessary`` cannot be switched off in a stored
record.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from megainvest.consent.constants import CookieCategoryId


class CookieConsentPreferences(BaseModel):
    """Per-category consent decisions."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    strictly_necessary: bool = True
    functional: bool = False
    analytics: bool = False
    marketing: bool = False

    @classmethod
    def necessary_only(cls) -> "CookieConsentPreferences":
        return cls()

    @classmethod
    def all_granted(cls) -> "CookieConsentPreferences":
        return cls(strictly_necessary=True, functional=True, analytics=True, marketing=True)

    def with_necessary(self) -> "CookieConsentPreferences":
        if self.strictly_necessary:
            return self
        return self.model_copy(update={"strictly_necessary": True})

    def is_enabled(self, category_id: str) -> bool:
        try:
            key = CookieCategoryId(category_id).value
        except ValueError:
            return False
        return bool(getattr(self, key))

    def as_dict(self) -> dict[str, bool]:
        return self.model_dump()


class ConsentRecord(BaseModel):
    """The versioned, timestamped consent persisted on the client."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    timestamp: int = Field(description="Epoch milliseconds when consent was captured")
    has_consented: bool = Field(default=False, alias="hasConsented")
    categories: CookieConsentPreferences

    @field_validator("categories")
    @classmethod
    def _necessary_always_granted(cls, value: CookieConsentPreferences) -> CookieConsentPreferences:
        return value.with_necessary()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ServerConsent(BaseModel):
    """Consent as returned by ``GET /cookie-consent``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | int
    preferences: CookieConsentPreferences
    version: str
    timestamp: int
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


@dataclass(frozen=True)
class RemoteConsent:
    """
    Outcome of fetching the server record.

    ``available`` is False when the server could not be asked (network or
    server failure); ``consent`` is None when it answered that there is no
    record for the caller.
    """

    available: bool
    consent: ServerConsent | None = None

    @classmethod
    def unavailable(cls) -> "RemoteConsent":
        return cls(available=False)

    @classmethod
    def missing(cls) -> "RemoteConsent":
        return cls(available=True)

    @classmethod
    def found(cls, consent: ServerConsent) -> "RemoteConsent":
        return cls(available=True, consent=consent)


@dataclass(frozen=True)
class CookieCategory:
    id: str
    name: str
    description: str
    required: bool
    enabled: bool = False

    def with_enabled(self, enabled: bool) -> "CookieCategory":
        return replace(self, enabled=enabled)


DEFAULT_CATEGORIES: tuple[CookieCategory, ...] = (
    CookieCategory(
        id=CookieCategoryId.STRICTLY_NECESSARY.value,
        name="Strictly Necessary",
        description=(
            "These cookies are essential for the website to function properly. They enable core "
            "functionality such as security, network management, and accessibility."
        ),
        required=True,
        enabled=True,
    ),
    CookieCategory(
        id=CookieCategoryId.FUNCTIONAL.value,
        name="Functional",
        description=(
            "These cookies enable enhanced functionality and personalization, such as remembering "
            "your preferences and settings."
        ),
        required=False,
    ),
    CookieCategory(
        id=CookieCategoryId.ANALYTICS.value,
        name="Analytics",
        description=(
            "These cookies help us understand how visitors interact with our website by collecting "
            "and reporting information anonymously."
        ),
        required=False,
    ),
    CookieCategory(
        id=CookieCategoryId.MARKETING.value,
        name="Marketing",
        description=(
            "These cookies are used to track visitors across websites to display relevant "
            "advertisements and marketing content."
        ),
        required=False,
    ),
)
