"""
Cookie Consent Service

Persistence for the cookie banner decisions sent by clients, plus the
aggregate view used by the admin back office. All functions are async and
accept an injected AsyncSession.

A principal is either an authenticated user or an anonymous session id.
Each principal owns at most one row: storing overwrites it, deleting
removes it.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from megainvest.exceptions import DatabaseError, MissingPrincipalError
from megainvest.models.cookie_consent import CookieConsent
from megainvest.models.user import User

logger = logging.getLogger(__name__)

# Window used for the "recent activity" figure of the analytics view
RECENT_ACTIVITY_DAYS = 30


def _principal_filter(user_id: int | None, session_id: str | None):
    if user_id is not None:
        return CookieConsent.user_id == user_id
    return (CookieConsent.session_id == session_id) & (CookieConsent.user_id.is_(None))


async def _find_principal_consent(
    user_id: int | None,
    session_id: str | None,
    db: AsyncSession,
) -> CookieConsent | None:
    result = await db.execute(
        select(CookieConsent)
        .where(_principal_filter(user_id, session_id))
        .order_by(CookieConsent.updated_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def _write_principal_consent(
    user_id: int | None,
    session_id: str | None,
    fields: dict[str, Any],
    db: AsyncSession,
) -> CookieConsent:
    consent = await _find_principal_consent(user_id, session_id, db)
    if consent is None:
        consent = CookieConsent(user_id=user_id)
        db.add(consent)

    consent.session_id = session_id or consent.session_id
    for name, value in fields.items():
        setattr(consent, name, value)
    consent.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(consent)
    return consent


async def store_consent(
    preferences: dict[str, bool],
    version: str,
    timestamp: int,
    db: AsyncSession,
    user_id: int | None = None,
    session_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> CookieConsent:
    """
    Create or overwrite the consent row of the current principal.

    ``strictly_necessary`` is stored as True whatever the client sent. When a
    concurrent request inserts the principal's row first, the unique index
    rejects the second insert and the write is retried as an update.

    Raises:
        MissingPrincipalError: neither a user nor a session id was given.
        DatabaseError: the write failed.
    """
    if user_id is None and not session_id:
        raise MissingPrincipalError()

    fields = {
        "strictly_necessary": True,
        "functional": bool(preferences.get("functional", False)),
        "analytics": bool(preferences.get("analytics", False)),
        "marketing": bool(preferences.get("marketing", False)),
        "consent_version": version,
        "consent_timestamp": timestamp,
        "ip_address": ip_address,
        "user_agent": user_agent[:512] if user_agent else None,
    }

    try:
        try:
            consent = await _write_principal_consent(user_id, session_id, fields, db)
        except IntegrityError:
            await db.rollback()
            logger.info("Cookie consent row created concurrently, updating it: user=%s session=%s", user_id, session_id)
            consent = await _write_principal_consent(user_id, session_id, fields, db)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error storing cookie consent: {e}")
        raise DatabaseError("Failed to store cookie consent preferences.", operation="store_consent")

    logger.info(
        "Cookie consent stored: user=%s session=%s version=%s",
        user_id,
        session_id,
        version,
    )
    return consent


async def get_latest_consent(user_id: int, db: AsyncSession) -> CookieConsent | None:
    """Return the user's consent row, or None if the user never consented."""
    try:
        return await _find_principal_consent(user_id, None, db)
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving cookie consent: {e}")
        raise DatabaseError("Failed to retrieve cookie consent preferences.", operation="get_consent")


async def delete_consent(
    db: AsyncSession,
    user_id: int | None = None,
    session_id: str | None = None,
) -> int:
    """
    Remove the principal's consent row.

    Returns the number of deleted rows; 0 when there was nothing to delete
    or no principal was given.
    """
    if user_id is None and not session_id:
        return 0

    try:
        result = await db.execute(delete(CookieConsent).where(_principal_filter(user_id, session_id)))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting cookie consent: {e}")
        raise DatabaseError("Failed to delete cookie consent preferences.", operation="delete_consent")

    deleted = result.rowcount or 0
    logger.info("Cookie consent deleted: user=%s session=%s rows=%d", user_id, session_id, deleted)
    return deleted


def serialize_consent(consent: CookieConsent) -> dict[str, Any]:
    """Shape a row the way clients read it back."""
    return {
        "id": consent.id,
        "preferences": consent.preferences_dict(),
        "version": consent.consent_version,
        "timestamp": consent.consent_timestamp,
        "createdAt": consent.created_at,
    }


def _percentage(part: int | None, total: int) -> float:
    if not total:
        return 0.0
    return round((part or 0) / total * 100, 2)


async def get_consent_analytics(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    user_id: int | None = None,
) -> dict[str, Any]:
    """
    Paginated consent rows plus acceptance statistics.

    Filters apply to the row listing; the statistics cover every stored
    consent.
    """
    conditions = []
    if start_date is not None:
        conditions.append(CookieConsent.created_at >= start_date)
    if end_date is not None:
        conditions.append(CookieConsent.created_at <= end_date)
    if user_id is not None:
        conditions.append(CookieConsent.user_id == user_id)

    count_stmt = select(func.count()).select_from(CookieConsent)
    rows_stmt = select(CookieConsent, User.email).outerjoin(User, CookieConsent.user_id == User.id)
    if conditions:
        count_stmt = count_stmt.where(*conditions)
        rows_stmt = rows_stmt.where(*conditions)
    rows_stmt = rows_stmt.order_by(CookieConsent.created_at.desc()).limit(limit).offset((page - 1) * limit)

    recent_cutoff = datetime.now(timezone.utc) - timedelta(days=RECENT_ACTIVITY_DAYS)

    try:
        total = (await db.execute(count_stmt)).scalar_one()
        rows = (await db.execute(rows_stmt)).all()

        stats = (
            await db.execute(
                select(
                    func.count(CookieConsent.id),
                    func.sum(case((CookieConsent.functional.is_(True), 1), else_=0)),
                    func.sum(case((CookieConsent.analytics.is_(True), 1), else_=0)),
                    func.sum(case((CookieConsent.marketing.is_(True), 1), else_=0)),
                    func.sum(case((CookieConsent.created_at >= recent_cutoff, 1), else_=0)),
                )
            )
        ).one()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching cookie consent analytics: {e}")
        raise DatabaseError("Failed to fetch cookie consent analytics.", operation="consent_analytics")

    total_consents, functional, analytics, marketing, recent = stats
    total_consents = total_consents or 0

    consents = [
        {
            "id": consent.id,
            "userId": consent.user_id,
            "userEmail": email,
            "sessionId": consent.session_id,
            "preferences": consent.preferences_dict(),
            "version": consent.consent_version,
            "ipAddress": consent.ip_address,
            "userAgent": consent.user_agent,
            "createdAt": consent.created_at,
        }
        for consent, email in rows
    ]

    return {
        "consents": consents,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
        "analytics": {
            "totalConsents": total_consents,
            "acceptanceRates": {
                "functional": _percentage(functional, total_consents),
                "analytics": _percentage(analytics, total_consents),
                "marketing": _percentage(marketing, total_consents),
            },
            "recentActivity": recent or 0,
        },
    }
