"""
Admin Routes

Back-office views over stored cookie consents.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from megainvest.auth import get_current_user_with_role
from megainvest.constants import ADMIN_ROLES
from megainvest.database import get_db
from megainvest.exceptions import ValidationError
from megainvest.models.user import User
from megainvest.schemas.cookie_consent import ConsentAnalyticsResponse
from megainvest.services import cookie_consent_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive query dates are read as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@router.get("/cookie-consents", response_model=ConsentAnalyticsResponse)
async def get_cookie_consent_analytics(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    user_id: int | None = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user_with_role(ADMIN_ROLES)),
):
    """
    List stored cookie consents with acceptance statistics.

    **Requires**: Admin or Superadmin role

    **Returns**:
    - Paginated consent rows (newest first)
    - Acceptance rate per optional category, in percent
    - Number of consents recorded in the last 30 days
    """
    start_date, end_date = _as_utc(start_date), _as_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate", field="startDate")

    logger.info(f"Admin {current_user.id} requested cookie consent analytics (page={page}, limit={limit})")
    data = await cookie_consent_service.get_consent_analytics(
        db,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
    )
    return {"success": True, "data": data}
