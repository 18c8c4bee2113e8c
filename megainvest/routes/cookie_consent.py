"""
Cookie Consent Routes

Endpoints the consent client synchronizes with:

- GET    /cookie-consent  : the authenticated user's stored consent
- POST   /cookie-consent  : create or overwrite the caller's consent
- DELETE /cookie-consent  : remove the caller's consent (no-op when absent)

Anonymous visitors are addressed by the ``sessionId`` generated on their
device; authenticated users by their account.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from megainvest.auth import get_current_user, get_optional_user
from megainvest.database import get_db
from megainvest.middleware.logging import get_client_ip
from megainvest.models.user import User
from megainvest.schemas.cookie_consent import (
    DeleteCookieConsentResponse,
    GetCookieConsentResponse,
    StoreCookieConsentRequest,
    StoreCookieConsentResponse,
)
from megainvest.services import cookie_consent_service

router = APIRouter(prefix="/cookie-consent", tags=["Cookie Consent"])

logger = logging.getLogger(__name__)


@router.post("", response_model=StoreCookieConsentResponse, status_code=status.HTTP_201_CREATED)
async def store_cookie_consent(
    payload: StoreCookieConsentRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> StoreCookieConsentResponse:
    """
    Store cookie consent preferences.

    Upserts the record of the current principal: the user when a bearer
    token is sent, otherwise the anonymous ``sessionId`` from the body.
    """
    consent = await cookie_consent_service.store_consent(
        preferences=payload.preferences.model_dump(),
        version=payload.version,
        timestamp=payload.timestamp,
        db=db,
        user_id=current_user.id if current_user else None,
        session_id=payload.session_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    return StoreCookieConsentResponse(
        message="Cookie consent preferences stored successfully.",
        consent_id=consent.id,
    )


@router.get("", response_model=GetCookieConsentResponse)
async def get_cookie_consent(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GetCookieConsentResponse:
    """
    Get the authenticated user's cookie consent.

    ``consent`` is null when the user has not consented yet.
    """
    consent = await cookie_consent_service.get_latest_consent(current_user.id, db)
    if consent is None:
        return GetCookieConsentResponse(consent=None)
    return GetCookieConsentResponse.model_validate(
        {"success": True, "consent": cookie_consent_service.serialize_consent(consent)}
    )


@router.delete("", response_model=DeleteCookieConsentResponse)
async def delete_cookie_consent(
    session_id: str | None = Query(default=None, alias="sessionId", max_length=64),
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> DeleteCookieConsentResponse:
    """
    Delete the caller's cookie consent.

    Always succeeds when there is nothing to delete, including for
    anonymous callers without a session id.
    """
    deleted = await cookie_consent_service.delete_consent(
        db,
        user_id=current_user.id if current_user else None,
        session_id=session_id,
    )
    message = "Cookie consent deleted." if deleted else "No cookie consent to delete."
    return DeleteCookieConsentResponse(message=message, deleted=deleted)
