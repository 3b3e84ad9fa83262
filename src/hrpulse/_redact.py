"""Helpers for safe debug logging.

Requests to the health bridge carry bearer tokens and broker credentials.
Everything logged at DEBUG from the transport or the MQTT runtime goes
through :func:`redact_for_log` first.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "accesstoken",
        "access_token",
        "refreshtoken",
        "refresh_token",
        "token",
        "authorization",
        "cookie",
        "secret",
    }
)

_BEARER_RE = re.compile(r"(?i)\bbearer\s+\S+")
_MAX_DEPTH = 20


def _is_sensitive(key: Any) -> bool:
    return str(key).lower() in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Sensitive mapping keys are replaced by ``"<redacted>"``, inline bearer
    tokens are masked, long strings are truncated and raw bytes are reduced
    to their length.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        masked = _BEARER_RE.sub("Bearer <redacted>", value)
        if len(masked) > max_string:
            return f"{masked[:max_string]}…<truncated>"
        return masked

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): "<redacted>" if _is_sensitive(k) else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Unknown objects are represented without dumping internals.
    return repr(value)
