from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ConsentPreferencesSchema(BaseModel):
    """The four cookie categories, snake_case on the wire."""

    model_config = ConfigDict(extra="forbid")

    strictly_necessary: bool
    functional: bool
    analytics: bool
    marketing: bool


class StoreCookieConsentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preferences: ConsentPreferencesSchema
    version: str = Field(min_length=1, max_length=20)
    timestamp: int = Field(gt=0, description="Epoch milliseconds when consent was captured")
    session_id: str | None = Field(default=None, alias="sessionId", min_length=1, max_length=64)


class StoreCookieConsentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    consent_id: str = Field(alias="consentId")


class CookieConsentOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    preferences: ConsentPreferencesSchema
    version: str
    timestamp: int
    created_at: datetime = Field(alias="createdAt")


class GetCookieConsentResponse(BaseModel):
    success: bool = True
    consent: CookieConsentOut | None = None


class DeleteCookieConsentResponse(BaseModel):
    success: bool = True
    message: str
    deleted: int


# ============================================================================
# Admin analytics
# ============================================================================


class AdminConsentItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: int | None = Field(default=None, alias="userId")
    user_email: str | None = Field(default=None, alias="userEmail")
    session_id: str | None = Field(default=None, alias="sessionId")
    preferences: ConsentPreferencesSchema
    version: str
    ip_address: str | None = Field(default=None, alias="ipAddress")
    user_agent: str | None = Field(default=None, alias="userAgent")
    created_at: datetime = Field(alias="createdAt")


class PaginationInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class AcceptanceRates(BaseModel):
    functional: float
    analytics: float
    marketing: float


class ConsentAnalytics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_consents: int = Field(alias="totalConsents")
    acceptance_rates: AcceptanceRates = Field(alias="acceptanceRates")
    recent_activity: int = Field(alias="recentActivity")


class ConsentAnalyticsData(BaseModel):
    consents: list[AdminConsentItem]
    pagination: PaginationInfo
    analytics: ConsentAnalytics


class ConsentAnalyticsResponse(BaseModel):
    success: bool = True
    data: ConsentAnalyticsData
