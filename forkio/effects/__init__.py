"""The closed set of effects a task may yield.

Adding an effect means adding its class to :data:`EFFECT_TYPES`, bumping
:data:`EFFECT_PROTOCOL_VERSION`, and registering a handler in the scheduler's
dispatch table. The scheduler refuses to start when the two disagree.
"""

from .base import EffectBase
from .control import NopEffect, nop
from .fetch import FetchEffect, fetch
from .fork import ForkEffect
from .job import AwaitJobEffect, Job
from .time import SleepEffect, sleep

EFFECT_PROTOCOL_VERSION = 1

EFFECT_TYPES: tuple[type[EffectBase], ...] = (
    NopEffect,
    SleepEffect,
    ForkEffect,
    FetchEffect,
    AwaitJobEffect,
)

__all__ = [
    "EFFECT_PROTOCOL_VERSION",
    "EFFECT_TYPES",
    "AwaitJobEffect",
    "EffectBase",
    "FetchEffect",
    "ForkEffect",
    "Job",
    "NopEffect",
    "SleepEffect",
    "fetch",
    "nop",
    "sleep",
]
