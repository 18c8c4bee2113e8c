"""
Remote consent transport.

``HttpConsentTransport`` talks to the ``/cookie-consent`` resource of the
MegaInvest API with httpx. A 401 from GET means "no record for this
caller"; 401/404 from DELETE means "nothing to delete". Every other
failure is raised as ``ConsentSyncError`` for the service to absorb.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from megainvest.consent.constants import CONSENT_ENDPOINT
from megainvest.consent.errors import ConsentSyncError
from megainvest.consent.types import ServerConsent

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class ConsentTransport(Protocol):
    async def fetch_consent(self) -> ServerConsent | None: ...

    async def save_consent(self, payload: dict[str, Any]) -> None: ...

    async def delete_consent(self, session_id: str | None = None) -> None: ...


class HttpConsentTransport:
    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return f"{self.base_url}{CONSENT_ENDPOINT}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        headers = self._headers()
        try:
            if self._client is not None:
                return await self._client.request(
                    method, self.url, headers=headers, timeout=self.timeout, **kwargs
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, self.url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise ConsentSyncError(f"{method} {self.url} timed out") from e
        except httpx.RequestError as e:
            raise ConsentSyncError(f"{method} {self.url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise ConsentSyncError(f"Failed to {action} cookie consent", status_code=response.status_code)

    async def fetch_consent(self) -> ServerConsent | None:
        response = await self._request("GET")
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return None
        self._raise_for_status(response, "fetch")

        try:
            body = response.json()
        except ValueError as e:
            raise ConsentSyncError("Cookie consent response is not JSON", status_code=response.status_code) from e

        consent = body.get("consent") if isinstance(body, dict) else None
        if consent is None:
            return None
        try:
            return ServerConsent.model_validate(consent)
        except ValidationError as e:
            raise ConsentSyncError("Cookie consent response is malformed", status_code=response.status_code) from e

    async def save_consent(self, payload: dict[str, Any]) -> None:
        response = await self._request("POST", json=payload)
        self._raise_for_status(response, "store")

    async def delete_consent(self, session_id: str | None = None) -> None:
        params = {"sessionId": session_id} if session_id else None
        response = await self._request("DELETE", params=params)
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.NOT_FOUND):
            logger.debug(f"DELETE {self.url} answered {response.status_code}; nothing to delete")
            return
        self._raise_for_status(response, "delete")
