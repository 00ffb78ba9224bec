"""Network fetch effect."""

from __future__ import annotations

from dataclasses import dataclass

from ._validators import ensure_http_url
from .base import EffectBase


@dataclass(frozen=True)
class FetchEffect(EffectBase):
    """Issue an HTTP GET and resume with the full response body as text."""

    tag = "fetch"

    url: str

    def __post_init__(self) -> None:
        ensure_http_url(self.url, name="url")

    def describe(self) -> str:
        return f"fetch({self.url!r})"


def fetch(url: str) -> FetchEffect:
    return FetchEffect(url=url)


__all__ = ["FetchEffect", "fetch"]
