"""
Tests for the local/server reconciliation rules
"""

from megainvest.consent.reconcile import reconcile
from megainvest.consent.types import CookieConsentPreferences, RemoteConsent, ServerConsent

LOCAL = CookieConsentPreferences.all_granted()
SERVER_PREFS = CookieConsentPreferences(functional=False, analytics=True, marketing=False)


def _server(preferences=SERVER_PREFS) -> ServerConsent:
    return ServerConsent(id="srv-1", preferences=preferences, version="1.0", timestamp=1)


class TestReconcile:
    def test_anonymous_keeps_local(self):
        outcome = reconcile(LOCAL, True, RemoteConsent.found(_server()), is_authenticated=False)

        assert outcome.source == "local"
        assert outcome.resolved == LOCAL
        assert outcome.push_local is False

    def test_server_record_wins_when_authenticated(self):
        outcome = reconcile(LOCAL, True, RemoteConsent.found(_server()), is_authenticated=True)

        assert outcome.adopt_server is True
        assert outcome.resolved == SERVER_PREFS
        assert outcome.push_local is False

    def test_server_necessary_is_forced(self):
        remote = RemoteConsent.found(_server(CookieConsentPreferences(strictly_necessary=False)))

        outcome = reconcile(LOCAL, False, remote, is_authenticated=True)

        assert outcome.resolved.strictly_necessary is True

    def test_missing_server_record_pushes_local_consent(self):
        outcome = reconcile(LOCAL, True, RemoteConsent.missing(), is_authenticated=True)

        assert outcome.source == "local"
        assert outcome.resolved == LOCAL
        assert outcome.push_local is True

    def test_nothing_to_push_without_local_consent(self):
        outcome = reconcile(CookieConsentPreferences(), False, RemoteConsent.missing(), is_authenticated=True)

        assert outcome.push_local is False

    def test_unreachable_server_keeps_local(self):
        outcome = reconcile(LOCAL, True, RemoteConsent.unavailable(), is_authenticated=True)

        assert outcome.source == "local"
        assert outcome.push_local is False
