"""
CookieConsent model for the cookie banner preferences.

Stores the latest cookie-category decision of a principal: an authenticated
user (``user_id``) or an anonymous visitor (``session_id``). A POST replaces
the principal's row and a DELETE removes it, so there is at most one row per
principal. Unique indexes enforce that even under concurrent writes.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from megainvest.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CookieConsent(Base):
    """Per-principal cookie consent with audit fields."""

    __tablename__ = "cookie_consents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )
    session_id = Column(String(64), nullable=True, index=True)

    strictly_necessary = Column(Boolean, nullable=False, default=True)
    functional = Column(Boolean, nullable=False, default=False)
    analytics = Column(Boolean, nullable=False, default=False)
    marketing = Column(Boolean, nullable=False, default=False)

    consent_version = Column(String(20), nullable=False)
    # Epoch milliseconds reported by the client when consent was captured
    consent_timestamp = Column(BigInteger, nullable=False)

    # IPv6 addresses can be up to 39 chars; 45 allows for mapped IPv4 addresses
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="cookie_consents")

    __table_args__ = (
        Index("idx_cookie_consent_created", "created_at"),
        Index("idx_cookie_consent_user_created", "user_id", "created_at"),
        # One row per user, and one per anonymous session
        Index("uq_cookie_consent_user", "user_id", unique=True),
        Index(
            "uq_cookie_consent_session",
            "session_id",
            unique=True,
            sqlite_where=text("user_id IS NULL"),
            postgresql_where=text("user_id IS NULL"),
        ),
    )

    def preferences_dict(self) -> dict[str, bool]:
        return {
            "strictly_necessary": bool(self.strictly_necessary),
            "functional": bool(self.functional),
            "analytics": bool(self.analytics),
            "marketing": bool(self.marketing),
        }

    def __repr__(self) -> str:
        principal = f"user={self.user_id}" if self.user_id is not None else f"session={self.session_id}"
        return f"<CookieConsent {self.id} {principal} v{self.consent_version}>"
