"""Transport strategies for reaching the remote execution service.

The strategy is chosen once, when the execution client is built: ``direct``
talks to the service with the API key, ``proxied`` talks to the submissions
proxy (``apps.judge_proxy``) which holds the key server-side.
"""

from __future__ import annotations

from typing import Any, Dict

import httpx

from jcas.core.config import ExecutionSettings, TransportMode

from .codec import encode_payload
from .errors import ConfigurationError, RemoteServiceError, ScoringError, TransportError

# Gateway statuses the proxy answers with when the upstream service is down.
PROXY_OUTAGE_STATUSES = frozenset({502, 503, 504})


class DirectTransport:
    """Calls the execution service directly with RapidAPI-style credentials."""

    mode = TransportMode.DIRECT

    def __init__(self, settings: ExecutionSettings) -> None:
        self._settings = settings

    @property
    def base_url(self) -> str:
        return self._settings.api_url

    @property
    def ready(self) -> bool:
        return self._settings.has_credentials

    def ensure_ready(self) -> None:
        if not self._settings.has_credentials:
            raise ConfigurationError(
                f"Execution service API key not configured (set {self._settings.api_key_env})"
            )

    def _headers(self) -> Dict[str, str]:
        return {
            "X-RapidAPI-Key": self._settings.api_key or "",
            "X-RapidAPI-Host": self._settings.api_host,
        }

    async def submit(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        body = dict(payload)
        body["source_code"] = encode_payload(payload.get("source_code"))
        body["stdin"] = encode_payload(payload.get("stdin"))
        return await client.post(
            "/submissions",
            params={"base64_encoded": "true", "wait": "false"},
            json=body,
            headers=self._headers(),
        )

    async def fetch(self, client: httpx.AsyncClient, token: str) -> httpx.Response:
        return await client.get(
            f"/submissions/{token}",
            params={"base64_encoded": "true"},
            headers=self._headers(),
        )

    def error_for(self, response: httpx.Response, operation: str) -> ScoringError:
        return RemoteServiceError(response.status_code, response.text, operation=operation)


class ProxiedTransport:
    """Calls the submissions proxy; no credentials leave the server."""

    mode = TransportMode.PROXIED

    def __init__(self, settings: ExecutionSettings) -> None:
        self._settings = settings

    @property
    def base_url(self) -> str:
        return self._settings.proxy_url or ""

    @property
    def ready(self) -> bool:
        return bool(self._settings.proxy_url)

    def ensure_ready(self) -> None:
        if not self._settings.proxy_url:
            raise ConfigurationError("Submissions proxy URL not configured (set JUDGE0_PROXY_URL)")

    async def submit(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post("/api/submissions", json=payload)

    async def fetch(self, client: httpx.AsyncClient, token: str) -> httpx.Response:
        return await client.get("/api/submissions", params={"token": token})

    def error_for(self, response: httpx.Response, operation: str) -> ScoringError:
        # The proxy reports a missing server-side key as a 500 with a JSON error.
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and "not configured" in str(data.get("error", "")):
            return ConfigurationError(f"Submissions proxy is not configured: {data['error']}")
        if response.status_code in PROXY_OUTAGE_STATUSES:
            message = f"Submissions proxy {operation} failed with HTTP {response.status_code}"
            if isinstance(data, dict) and data.get("error"):
                message = f"{message}: {data['error']}"
            return TransportError(message)
        return RemoteServiceError(response.status_code, response.text, operation=operation)


SubmissionTransport = DirectTransport | ProxiedTransport


def build_transport(settings: ExecutionSettings) -> SubmissionTransport:
    if settings.transport is TransportMode.PROXIED:
        return ProxiedTransport(settings)
    return DirectTransport(settings)


__all__ = ["DirectTransport", "ProxiedTransport", "SubmissionTransport", "build_transport"]
