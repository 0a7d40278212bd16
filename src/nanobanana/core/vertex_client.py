"""Outbound client for the Vertex AI ``generateContent`` API.

:class:`VertexClient` performs exactly one HTTP call per generation request.
The whole call, credential lookup included, runs under a hard deadline equal
to the request's normalized timeout: when it expires the in-flight request is
cancelled and :class:`~nanobanana.core.errors.GenerationTimeoutError` is
raised.  Nothing is retried.

Authentication
--------------
When ``NANOBANANA_API_KEY`` is configured it is sent in the
``x-goog-api-key`` header.  Otherwise an OAuth bearer token is obtained from
Application Default Credentials through ``google-auth``
(:class:`GoogleCredentials`).  The token refresh is a blocking call and is
run in a worker thread.

Usage
-----
::

    from nanobanana.core.config import config
    from nanobanana.core.vertex_client import VertexClient

    client = VertexClient(config)
    body = await client.generate_content(payload, timeout=60)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import google.auth
import google.auth.exceptions
import google.auth.transport.requests
import httpx

from nanobanana.core.config import NanoBananaConfig
from nanobanana.core.errors import ConfigurationError, GenerationTimeoutError, UpstreamError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class GoogleCredentials:
    """Lazily loaded Application Default Credentials.

    The credentials object is created on first use and refreshed whenever its
    token has expired.
    """

    def __init__(self, scopes: list[str] | None = None) -> None:
        self._scopes = scopes or [CLOUD_PLATFORM_SCOPE]
        self._credentials = None
        self._lock = threading.Lock()

    def token(self) -> str:
        """Return a valid access token, refreshing it if needed.

        Raises:
            ConfigurationError: If no credentials are available or the refresh
                is rejected.
        """
        with self._lock:
            try:
                if self._credentials is None:
                    self._credentials, _ = google.auth.default(scopes=self._scopes)
                if not self._credentials.valid:
                    self._credentials.refresh(google.auth.transport.requests.Request())
            except google.auth.exceptions.GoogleAuthError as e:
                raise ConfigurationError(
                    "Google Cloud credentials are unavailable",
                    details={"reason": str(e)},
                ) from e
            return self._credentials.token


def upstream_error_from_response(response: httpx.Response) -> UpstreamError:
    """Build an :class:`UpstreamError` from a non-success provider response.

    Google APIs answer errors as ``{"error": {"code", "message", "status"}}``.
    The message is surfaced when present; any other body falls back to a
    generic message.  An error status is passed through unchanged; any other
    non-success status (1xx, 3xx) is not a valid answer and becomes 502.
    """
    message = f"Provider returned HTTP {response.status_code}"
    details: dict[str, Any] = {"upstreamStatus": response.status_code}
    try:
        payload = response.json()
    except ValueError:
        payload = None

    error_obj = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error_obj, dict):
        if isinstance(error_obj.get("message"), str) and error_obj["message"]:
            message = error_obj["message"]
        if isinstance(error_obj.get("status"), str):
            details["providerStatus"] = error_obj["status"]

    status_code = response.status_code if response.status_code >= 400 else 502
    return UpstreamError(message, status_code=status_code, details=details)


class VertexClient:
    """Single-shot ``generateContent`` caller.

    Args:
        settings: Provider configuration.  Completeness is checked on every
            call, not at construction, so a misconfigured service still starts.
        credentials: Token source used when no API key is configured.
            Defaults to :class:`GoogleCredentials`.
        transport: Optional httpx transport (tests inject a mock transport).
    """

    def __init__(
        self,
        settings: NanoBananaConfig,
        credentials: GoogleCredentials | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._credentials = credentials or GoogleCredentials()
        self._transport = transport

    def endpoint_url(self) -> str:
        """Return the ``generateContent`` URL for the configured model."""
        s = self.settings
        return (
            f"{s.base_url}/v1/projects/{s.project_id}/locations/{s.region}"
            f"/publishers/google/models/{s.model}:generateContent"
        )

    async def _auth_headers(self) -> dict[str, str]:
        if self.settings.api_key:
            return {"x-goog-api-key": self.settings.api_key}
        token = await asyncio.to_thread(self._credentials.token)
        return {"Authorization": f"Bearer {token}"}

    async def _post(self, url: str, payload: dict, timeout: float) -> httpx.Response:
        headers = await self._auth_headers()
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            return await client.post(url, json=payload, headers=headers)

    async def generate_content(self, payload: dict, timeout: float) -> Any:
        """Send *payload* to the provider and return the decoded JSON body.

        Args:
            payload: ``generateContent`` request body.
            timeout: Hard deadline in seconds for the whole call.

        Returns:
            The decoded response body.  A success response that is not valid
            JSON yields an empty dict so the caller can shape it as empty.

        Raises:
            ConfigurationError: Provider identifiers or credentials are missing.
            GenerationTimeoutError: The deadline expired; the call was cancelled.
            UpstreamError: Non-success status, or the provider was unreachable.
        """
        self.settings.require_provider()
        url = self.endpoint_url()

        try:
            response = await asyncio.wait_for(self._post(url, payload, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Provider call exceeded %ss deadline; cancelled", timeout)
            raise GenerationTimeoutError(
                f"Provider did not respond within {timeout:g} seconds",
                details={"timeout": timeout},
            ) from e
        except httpx.RequestError as e:
            logger.warning("Provider unreachable: %s", e)
            raise UpstreamError(
                "Could not reach the provider",
                status_code=502,
                details={"reason": str(e)},
            ) from e

        if not response.is_success:
            error = upstream_error_from_response(response)
            logger.warning("Provider returned %s: %s", response.status_code, error.message)
            raise error

        try:
            return response.json()
        except ValueError:
            logger.warning("Provider returned a non-JSON success body; treating as empty")
            return {}
