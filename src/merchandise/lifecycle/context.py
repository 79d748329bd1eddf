"""Values passed into a transition: the invocation and the context guards/hooks see."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class EventInvocation:
    """One request to fire an event. Lives for the duration of one ``fire`` call."""

    event: str
    source: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass
class LifecycleContext:
    """Caller-supplied dependencies and parameters for a ``fire`` call.

    ``collaborators`` overrides the engine's default collaborators for this
    call only; ``params`` are merged with keyword parameters given to ``fire``.
    """

    collaborators: Any = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionContext:
    """What a guard or hook receives alongside the item."""

    invocation: EventInvocation
    from_state: str
    to_state: str | None
    collaborators: Any
    repository: Any
    now: datetime

    @property
    def event(self) -> str:
        return self.invocation.event

    @property
    def source(self) -> str | None:
        return self.invocation.source

    @property
    def params(self) -> Mapping[str, Any]:
        return self.invocation.params
