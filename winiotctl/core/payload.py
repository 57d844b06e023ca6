"""Lenient readers for the device's loosely typed JSON responses."""

from __future__ import annotations

import json
from typing import Any

import httpx


def json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Return the response body as a JSON object, or ``None`` if it is not one."""
    if not response.content:
        return None
    try:
        loaded = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(loaded, dict):
        return None
    return loaded


def coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    return None
