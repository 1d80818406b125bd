"""Submissions proxy: holds the execution-service API key on the server side.

Clients in ``proxied`` mode post plain JSON here; the proxy base64-encodes
the payload, applies the configured limits and forwards it upstream.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, AsyncIterator, Dict

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from apps.scoring.codec import encode_payload
from jcas.core.config import JAVA_LANGUAGE_ID, ExecutionSettings, settings_from_env

LOGGER = logging.getLogger("jcas.judge_proxy")


@lru_cache
def get_settings() -> ExecutionSettings:
    load_dotenv()
    return settings_from_env()


async def get_upstream_client(
    settings: ExecutionSettings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(base_url=settings.api_url, timeout=settings.request_timeout) as client:
        yield client


class SubmissionRequest(BaseModel):
    source_code: str = Field(..., min_length=1)
    language_id: int = Field(default=JAVA_LANGUAGE_ID, ge=1)
    stdin: str = ""
    cpu_time_limit: float | None = Field(default=None, gt=0)
    memory_limit: int | None = Field(default=None, gt=0)
    wall_time_limit: float | None = Field(default=None, gt=0)


class HealthResponse(BaseModel):
    status: str
    api_key_configured: bool
    upstream: str


app = FastAPI(title="JCAS Submissions Proxy", version="0.3.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _headers(settings: ExecutionSettings) -> Dict[str, str]:
    return {"X-RapidAPI-Key": settings.api_key or "", "X-RapidAPI-Host": settings.api_host}


def _clamp(requested: float | None, ceiling: float) -> float:
    return ceiling if requested is None else min(requested, ceiling)


def _relay(response: httpx.Response) -> JSONResponse:
    try:
        content = response.json()
    except ValueError:
        content = {"error": "Upstream returned a non-JSON response", "body": response.text}
    return JSONResponse(status_code=response.status_code, content=content)


@app.get("/health", response_model=HealthResponse)
def health(settings: ExecutionSettings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", api_key_configured=settings.has_credentials, upstream=settings.api_url)


@app.post("/api/submissions")
async def create_submission(
    payload: SubmissionRequest,
    settings: ExecutionSettings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> JSONResponse:
    if not settings.has_credentials:
        return _error(500, "Judge0 API key not configured")

    cpu_limit = _clamp(payload.cpu_time_limit, settings.cpu_time_limit)
    body = {
        "source_code": encode_payload(payload.source_code),
        "language_id": payload.language_id,
        "stdin": encode_payload(payload.stdin),
        "cpu_time_limit": cpu_limit,
        "memory_limit": int(_clamp(payload.memory_limit, settings.memory_limit_kb)),
        "wall_time_limit": _clamp(payload.wall_time_limit, settings.effective_wall_time_limit),
    }
    try:
        response = await client.post(
            "/submissions",
            params={"base64_encoded": "true", "wait": "false"},
            json=body,
            headers=_headers(settings),
        )
    except httpx.HTTPError as exc:
        LOGGER.error("Upstream submission failed: %s", exc)
        return _error(502, "Failed to reach execution service", details=str(exc))
    if response.is_error:
        LOGGER.warning("Upstream rejected submission with HTTP %s", response.status_code)
    return _relay(response)


@app.get("/api/submissions")
async def get_submission(
    token: str | None = Query(None, description="Submission token returned by POST /api/submissions."),
    settings: ExecutionSettings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> JSONResponse:
    if not settings.has_credentials:
        return _error(500, "Judge0 API key not configured")
    if not token:
        return _error(400, "Token parameter required")
    try:
        response = await client.get(
            f"/submissions/{token}",
            params={"base64_encoded": "true"},
            headers=_headers(settings),
        )
    except httpx.HTTPError as exc:
        LOGGER.error("Upstream result fetch failed for %s: %s", token, exc)
        return _error(502, "Failed to reach execution service", details=str(exc))
    return _relay(response)
