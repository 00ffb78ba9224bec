"""Runtime validators for effect attribute type checking."""

from __future__ import annotations

import math
from urllib.parse import urlsplit


def _type_name(value: object) -> str:
    return type(value).__name__


def ensure_str(value: object, *, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {_type_name(value)}")


def ensure_callable(value: object, *, name: str) -> None:
    if not callable(value):
        raise TypeError(f"{name} must be callable, got {_type_name(value)}")


def ensure_non_negative_number(value: object, *, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be a number, got {_type_name(value)}")
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"{name} must be finite, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value!r}")


def ensure_http_url(value: object, *, name: str) -> None:
    ensure_str(value, name=name)
    parts = urlsplit(value)  # type: ignore[arg-type]
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"{name} must be an http(s) URL, got {value!r}")


__all__ = [
    "ensure_callable",
    "ensure_http_url",
    "ensure_non_negative_number",
    "ensure_str",
]
