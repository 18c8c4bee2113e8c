"""
Local/server consent reconciliation.

Pure decision logic used by the consent hook when authentication state
changes. It performs no I/O; the caller applies the outcome.
"""

from dataclasses import dataclass
from typing import Literal

from megainvest.consent.types import CookieConsentPreferences, RemoteConsent


@dataclass(frozen=True)
class Reconciliation:
    resolved: CookieConsentPreferences
    source: Literal["local", "server"]
    push_local: bool = False

    @property
    def adopt_server(self) -> bool:
        return self.source == "server"


def reconcile(
    local: CookieConsentPreferences,
    local_has_consent: bool,
    remote: RemoteConsent,
    is_authenticated: bool,
) -> Reconciliation:
    """
    Decide which preferences win.

    - anonymous, or the server could not be reached: local wins
    - the server holds a record: the server wins
    - the server holds nothing but the user consented locally: keep local
      and push it up
    """
    if not is_authenticated or not remote.available:
        return Reconciliation(resolved=local, source="local")

    if remote.consent is not None:
        return Reconciliation(resolved=remote.consent.preferences.with_necessary(), source="server")

    return Reconciliation(resolved=local, source="local", push_local=local_has_consent)
