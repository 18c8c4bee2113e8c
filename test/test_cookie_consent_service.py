"""
Tests for the server-side cookie consent service
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import TestSessionLocal
from megainvest.exceptions import DatabaseError, MissingPrincipalError
from megainvest.models.cookie_consent import CookieConsent
from megainvest.services import cookie_consent_service

PREFS = {"strictly_necessary": False, "functional": True, "analytics": False, "marketing": False}


class TestStoreConsent:
    @pytest.mark.asyncio
    async def test_creates_row(self, test_db):
        consent = await cookie_consent_service.store_consent(PREFS, "1.0", 123, test_db, session_id="s1")

        assert consent.id
        assert consent.preferences_dict() == {**PREFS, "strictly_necessary": True}
        assert consent.created_at is not None

    @pytest.mark.asyncio
    async def test_requires_principal(self, test_db):
        with pytest.raises(MissingPrincipalError):
            await cookie_consent_service.store_consent(PREFS, "1.0", 123, test_db)

    @pytest.mark.asyncio
    async def test_user_row_remembers_session(self, test_db, test_user):
        await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, user_id=test_user.id, session_id="s1")
        consent = await cookie_consent_service.store_consent(PREFS, "1.1", 2, test_db, user_id=test_user.id)

        assert consent.session_id == "s1"
        assert consent.consent_version == "1.1"

    @pytest.mark.asyncio
    async def test_long_user_agent_truncated(self, test_db):
        consent = await cookie_consent_service.store_consent(
            PREFS, "1.0", 1, test_db, session_id="s1", user_agent="x" * 600
        )
        assert len(consent.user_agent) == 512

    @pytest.mark.asyncio
    async def test_database_failure(self):
        db = AsyncMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(DatabaseError):
            await cookie_consent_service.store_consent(PREFS, "1.0", 1, db, session_id="s1")

        db.rollback.assert_awaited_once()


class TestGetAndDelete:
    @pytest.mark.asyncio
    async def test_latest_consent(self, test_db, test_user):
        assert await cookie_consent_service.get_latest_consent(test_user.id, test_db) is None

        stored = await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, user_id=test_user.id)

        found = await cookie_consent_service.get_latest_consent(test_user.id, test_db)
        assert found.id == stored.id

    @pytest.mark.asyncio
    async def test_delete_without_principal(self):
        db = AsyncMock()
        assert await cookie_consent_service.delete_consent(db) == 0
        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_by_session(self, test_db):
        await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, session_id="s1")

        assert await cookie_consent_service.delete_consent(test_db, session_id="s1") == 1
        assert await cookie_consent_service.delete_consent(test_db, session_id="s1") == 0

    @pytest.mark.asyncio
    async def test_serialize(self, test_db):
        consent = await cookie_consent_service.store_consent(PREFS, "1.0", 77, test_db, session_id="s1")

        data = cookie_consent_service.serialize_consent(consent)

        assert data["id"] == consent.id
        assert data["timestamp"] == 77
        assert data["preferences"]["strictly_necessary"] is True
        assert data["createdAt"] == consent.created_at


async def _count_rows(db) -> int:
    return (await db.execute(select(func.count()).select_from(CookieConsent))).scalar_one()


class TestOneRowPerPrincipal:
    @pytest.mark.asyncio
    async def test_concurrent_anonymous_stores_keep_one_row(self, test_db):
        async def store(functional: bool):
            async with TestSessionLocal() as session:
                return await cookie_consent_service.store_consent(
                    {**PREFS, "functional": functional}, "1.0", 1, session, session_id="race"
                )

        first, second = await asyncio.gather(store(True), store(False))

        assert first.id == second.id
        assert await _count_rows(test_db) == 1

    @pytest.mark.asyncio
    async def test_concurrent_user_stores_keep_one_row(self, test_db, test_user):
        async def store(session_id: str):
            async with TestSessionLocal() as session:
                return await cookie_consent_service.store_consent(
                    PREFS, "1.0", 1, session, user_id=test_user.id, session_id=session_id
                )

        await asyncio.gather(store("tab-a"), store("tab-b"))

        assert await _count_rows(test_db) == 1

    @pytest.mark.asyncio
    async def test_insert_conflict_becomes_update(self, test_db, monkeypatch):
        """A row inserted between the lookup and the insert is updated instead."""
        existing = await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, session_id="s1")
        lookup = cookie_consent_service._find_principal_consent
        calls = []

        async def stale_first_lookup(user_id, session_id, db):
            calls.append(session_id)
            if len(calls) == 1:
                return None
            return await lookup(user_id, session_id, db)

        monkeypatch.setattr(cookie_consent_service, "_find_principal_consent", stale_first_lookup)

        async with TestSessionLocal() as session:
            consent = await cookie_consent_service.store_consent(
                {**PREFS, "marketing": True}, "1.1", 2, session, session_id="s1"
            )

        assert len(calls) == 2
        assert consent.id == existing.id
        assert consent.marketing is True
        assert consent.consent_version == "1.1"
        assert await _count_rows(test_db) == 1

    @pytest.mark.asyncio
    async def test_duplicate_anonymous_row_rejected(self, test_db):
        test_db.add(CookieConsent(session_id="dup", consent_version="1.0", consent_timestamp=1))
        await test_db.commit()

        test_db.add(CookieConsent(session_id="dup", consent_version="1.0", consent_timestamp=2))
        with pytest.raises(IntegrityError):
            await test_db.commit()
        await test_db.rollback()

    @pytest.mark.asyncio
    async def test_user_row_may_share_anonymous_session(self, test_db, test_user):
        await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, session_id="shared")
        await cookie_consent_service.store_consent(PREFS, "1.0", 1, test_db, user_id=test_user.id, session_id="shared")

        assert await _count_rows(test_db) == 2
