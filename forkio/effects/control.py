"""Cooperative yield effect."""

from __future__ import annotations

from dataclasses import dataclass

from .base import EffectBase


@dataclass(frozen=True)
class NopEffect(EffectBase):
    """Give other tasks a chance to run, then continue with ``None``."""

    tag = "nop"


def nop() -> NopEffect:
    return NopEffect()


__all__ = ["NopEffect", "nop"]
