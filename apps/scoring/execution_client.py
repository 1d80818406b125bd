"""Async client for the remote sandboxed execution service.

Each submission moves through ``Created -> Submitted -> {Queued <-> Processing}
-> Terminal``. Submitting and fetching are separate remote calls, so the
client polls with a bounded number of attempts.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

import anyio
import httpx

from jcas.core.config import ExecutionSettings

from .codec import decode_payload
from .errors import ExecutionTimeout, RemoteServiceError, TransportError
from .models import ExecutionOutcome, StatusClass
from .scaffold import ComposedProgram
from .transports import SubmissionTransport, build_transport

LOGGER = logging.getLogger("jcas.scoring.execution")

# Status ids at or below this value mean "In Queue" / "Processing".
NON_TERMINAL_MAX_ID = 2

_STATUS_CLASSES: Dict[int, StatusClass] = {
    3: StatusClass.ACCEPTED,
    4: StatusClass.WRONG_ANSWER,
    5: StatusClass.TIME_LIMIT,
    6: StatusClass.COMPILE_ERROR,
    7: StatusClass.RUNTIME_ERROR,  # SIGSEGV
    8: StatusClass.RUNTIME_ERROR,  # SIGXFSZ
    9: StatusClass.RUNTIME_ERROR,  # SIGFPE
    10: StatusClass.RUNTIME_ERROR,  # SIGABRT
    11: StatusClass.RUNTIME_ERROR,  # NZEC
    12: StatusClass.RUNTIME_ERROR,  # Other
    13: StatusClass.INTERNAL_ERROR,
    14: StatusClass.INTERNAL_ERROR,  # Exec Format Error
}

Sleep = Callable[[float], Awaitable[None]]


def classify_status(status_id: int | None) -> StatusClass:
    if status_id is None:
        return StatusClass.UNKNOWN
    return _STATUS_CLASSES.get(status_id, StatusClass.UNKNOWN)


def _status_id(payload: Dict[str, Any]) -> int | None:
    status = payload.get("status")
    if not isinstance(status, dict):
        return None
    try:
        return int(status.get("id"))
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_result(payload: Dict[str, Any], token: str | None = None) -> ExecutionOutcome:
    """Translate a result payload from the service into an ``ExecutionOutcome``."""
    status_id = _status_id(payload)
    status = payload.get("status") if isinstance(payload.get("status"), dict) else {}
    description = str(status.get("description") or "Unknown")
    status_class = classify_status(status_id)

    stderr = decode_payload(payload.get("stderr"))
    if status_class is StatusClass.RUNTIME_ERROR and not stderr.strip():
        stderr = description
    seconds = _optional_float(payload.get("time"))

    return ExecutionOutcome(
        terminal=status_id is None or status_id > NON_TERMINAL_MAX_ID,
        status_class=status_class,
        status_id=status_id,
        status_description=description,
        stdout=decode_payload(payload.get("stdout")),
        stderr=stderr,
        compile_output=decode_payload(payload.get("compile_output")),
        time_ms=seconds * 1000 if seconds is not None else None,
        memory_kb=_optional_int(payload.get("memory")),
        exit_code=_optional_int(payload.get("exit_code")),
        token=payload.get("token") or token,
    )


class ExecutionClient:
    """Submits composed programs and polls until the service reports a terminal status."""

    def __init__(
        self,
        settings: ExecutionSettings,
        *,
        transport: SubmissionTransport | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport or build_transport(settings)
        self._sleep = sleep or anyio.sleep
        if client is None:
            self._client = httpx.AsyncClient(
                base_url=self._transport.base_url,
                timeout=settings.request_timeout,
            )
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    @property
    def mode(self) -> str:
        return self._transport.mode.value

    def ensure_ready(self) -> None:
        """Raise ``ConfigurationError`` when the transport lacks credentials or endpoints."""
        self._transport.ensure_ready()

    def status(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "api_key": "configured" if self.settings.has_credentials else "missing",
            "proxy_url": self.settings.proxy_url,
            "language_id": self.settings.language_id,
            "ready": self._transport.ready,
        }

    def build_payload(self, program: ComposedProgram | str, stdin: str = "") -> Dict[str, Any]:
        return {
            "source_code": str(program),
            "language_id": self.settings.language_id,
            "stdin": stdin or "",
            "cpu_time_limit": self.settings.cpu_time_limit,
            "memory_limit": self.settings.memory_limit_kb,
            "wall_time_limit": self.settings.effective_wall_time_limit,
        }

    async def submit(self, program: ComposedProgram | str, stdin: str = "") -> str:
        """Create a remote submission and return its token."""
        self._transport.ensure_ready()
        payload = self.build_payload(program, stdin)
        try:
            response = await self._transport.submit(self._client, payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"Could not reach execution service: {exc}") from exc
        if response.is_error:
            raise self._transport.error_for(response, "submit")
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteServiceError(response.status_code, response.text, operation="submit") from exc
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise RemoteServiceError(response.status_code, response.text, operation="submit")
        LOGGER.info("Submitted program", extra={"token": token, "mode": self.mode})
        return str(token)

    async def await_result(
        self,
        token: str,
        max_attempts: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> ExecutionOutcome:
        """Poll until a terminal status arrives or ``max_attempts`` is exhausted."""
        attempts = max_attempts if max_attempts is not None else self.settings.max_attempts
        interval = (poll_interval_ms if poll_interval_ms is not None else self.settings.poll_interval_ms) / 1000
        for attempt in range(1, attempts + 1):
            last = attempt == attempts
            try:
                payload = await self._fetch(token)
            except (TransportError, RemoteServiceError) as exc:
                if last or not _retryable(exc):
                    raise
                LOGGER.warning("Poll attempt %d/%d for %s failed: %s", attempt, attempts, token, exc)
                await self._sleep(interval)
                continue

            status_id = _status_id(payload)
            if status_id is None or status_id <= NON_TERMINAL_MAX_ID:
                LOGGER.debug("Submission %s not terminal (status=%s, attempt %d/%d)", token, status_id, attempt, attempts)
                if not last:
                    await self._sleep(interval)
                continue
            outcome = parse_result(payload, token)
            LOGGER.info(
                "Submission finished",
                extra={"token": token, "status": outcome.status_class.value, "attempts": attempt},
            )
            return outcome
        raise ExecutionTimeout(token, attempts)

    async def execute(self, program: ComposedProgram | str, stdin: str = "") -> ExecutionOutcome:
        """Submit and wait; every call creates a new remote submission."""
        token = await self.submit(program, stdin)
        return await self.await_result(token)

    async def _fetch(self, token: str) -> Dict[str, Any]:
        try:
            response = await self._transport.fetch(self._client, token)
        except httpx.HTTPError as exc:
            raise TransportError(f"Could not reach execution service: {exc}") from exc
        if response.is_error:
            raise self._transport.error_for(response, "result")
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteServiceError(response.status_code, response.text, operation="result") from exc
        return data if isinstance(data, dict) else {}

    async def aclose(self) -> None:
        if getattr(self, "_owns_client", False):
            await self._client.aclose()

    async def __aenter__(self) -> "ExecutionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _retryable(exc: Exception) -> bool:
    if isinstance(exc, RemoteServiceError):
        return exc.status_code >= 500 or exc.status_code == 429
    return isinstance(exc, TransportError)


__all__ = ["ExecutionClient", "classify_status", "parse_result"]
