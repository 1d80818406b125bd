"""Transport-safe encoding for source code, stdin and program output."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def encode_payload(text: str | None) -> str:
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii")


def decode_payload(value: Any) -> str:
    """Decode base64 text from the service, passing plain text through unchanged.

    Some deployments answer with un-encoded output, so the value is only decoded
    when it uses the base64 alphabet, has a valid length and decodes to UTF-8.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value)
    compact = "".join(value.split())
    if not compact or len(compact) % 4 or not _BASE64_RE.match(compact):
        return value
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


__all__ = ["decode_payload", "encode_payload"]
