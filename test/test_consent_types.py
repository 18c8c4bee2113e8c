"""
Tests for consent value types
"""

import pytest
from pydantic import ValidationError

from megainvest.consent.types import (
    DEFAULT_CATEGORIES,
    ConsentRecord,
    CookieConsentPreferences,
    RemoteConsent,
    ServerConsent,
)


class TestCookieConsentPreferences:
    def test_defaults_are_necessary_only(self):
        prefs = CookieConsentPreferences()
        assert prefs == CookieConsentPreferences.necessary_only()
        assert prefs.strictly_necessary is True
        assert not (prefs.functional or prefs.analytics or prefs.marketing)

    def test_all_granted(self):
        prefs = CookieConsentPreferences.all_granted()
        assert all(prefs.as_dict().values())

    def test_with_necessary_forces_necessary(self):
        prefs = CookieConsentPreferences(strictly_necessary=False, analytics=True)
        forced = prefs.with_necessary()
        assert forced.strictly_necessary is True
        assert forced.analytics is True

    @pytest.mark.parametrize(
        "category_id,expected",
        [("strictly_necessary", True), ("analytics", True), ("marketing", False), ("unknown", False)],
    )
    def test_is_enabled(self, category_id, expected):
        prefs = CookieConsentPreferences(analytics=True)
        assert prefs.is_enabled(category_id) is expected

    def test_preferences_are_immutable(self):
        prefs = CookieConsentPreferences()
        with pytest.raises(ValidationError):
            prefs.marketing = True


class TestConsentRecord:
    def test_accepts_camel_case_flag(self):
        record = ConsentRecord.model_validate(
            {"version": "1.0", "timestamp": 5, "hasConsented": True, "categories": {}}
        )
        assert record.has_consented is True
        assert record.categories.strictly_necessary is True

    def test_necessary_is_forced_on_construction(self):
        record = ConsentRecord(
            version="1.0",
            timestamp=5,
            has_consented=True,
            categories=CookieConsentPreferences(strictly_necessary=False),
        )
        assert record.categories.strictly_necessary is True


class TestServerConsent:
    def test_parses_api_payload(self):
        consent = ServerConsent.model_validate(
            {
                "id": "abc",
                "preferences": {
                    "strictly_necessary": True,
                    "functional": False,
                    "analytics": True,
                    "marketing": False,
                },
                "version": "1.0",
                "timestamp": 1700000000000,
                "createdAt": "2026-01-01T00:00:00Z",
            }
        )
        assert consent.preferences.analytics is True
        assert consent.created_at.year == 2026

    def test_remote_consent_constructors(self):
        assert RemoteConsent.unavailable().available is False
        assert RemoteConsent.missing() == RemoteConsent(available=True, consent=None)


def test_default_categories():
    assert [c.id for c in DEFAULT_CATEGORIES] == ["strictly_necessary", "functional", "analytics", "marketing"]
    assert [c.required for c in DEFAULT_CATEGORIES] == [True, False, False, False]
