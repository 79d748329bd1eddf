"""Transition table: per event, an ordered list of declarative rules."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from merchandise.exceptions import ConfigurationError, UnknownEvent

# Marker for a rule that applies from every state
ANY = "*"


@dataclass(frozen=True)
class TransitionRule:
    """One candidate transition of an event.

    ``from_states`` is either a tuple of state names or ``ANY``. A missing
    ``guard`` means the rule is unconditional. ``after`` names a hook that runs
    only when this particular rule is selected.
    """

    event: str
    from_states: tuple[str, ...] | str
    to_state: str
    guard: str | None = None
    after: str | None = None

    def applies_to(self, state: str) -> bool:
        return self.from_states == ANY or state in self.from_states

    @property
    def is_reaffirming(self) -> bool:
        """True when the rule can leave the item in the state it started from."""
        return self.applies_to(self.to_state)


@dataclass(frozen=True)
class EventDefinition:
    """An event with its ordered rules and event-level hooks."""

    name: str
    rules: tuple[TransitionRule, ...]
    before: tuple[str, ...] = ()
    after: tuple[str, ...] = ()
    after_commit: tuple[str, ...] = ()

    def candidates(self, state: str) -> Iterator[TransitionRule]:
        """Rules whose from-set contains ``state``, in declaration order."""
        return (rule for rule in self.rules if rule.applies_to(state))


def transitions(from_, to: str, guard: str | None = None, after: str | None = None) -> TransitionRule:
    """Declare a rule inside :func:`event`. ``from_`` takes a name, a sequence or ``ANY``."""
    if from_ == ANY:
        from_states = ANY
    elif isinstance(from_, str):
        from_states = (from_,)
    else:
        from_states = tuple(from_)
    return TransitionRule(event="", from_states=from_states, to_state=to, guard=guard, after=after)


def event(name: str, *rules: TransitionRule, before=(), after=(), after_commit=()) -> EventDefinition:
    """Declare an event; rules keep the order they are given in."""
    if not rules:
        raise ConfigurationError(f"Event '{name}' declares no transitions")

    return EventDefinition(
        name=name,
        rules=tuple(replace(rule, event=name) for rule in rules),
        before=_names(before),
        after=_names(after),
        after_commit=_names(after_commit),
    )


def _names(value) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class TransitionTable:
    """Lookup of event definitions by name."""

    def __init__(self, events: Iterable[EventDefinition]):
        self._events: dict[str, EventDefinition] = {}
        for definition in events:
            if definition.name in self._events:
                raise ConfigurationError(f"Event '{definition.name}' is declared twice")
            self._events[definition.name] = definition

    def __contains__(self, name: object) -> bool:
        return name in self._events

    def __iter__(self) -> Iterator[EventDefinition]:
        return iter(self._events.values())

    def get(self, name: str) -> EventDefinition:
        try:
            return self._events[name]
        except KeyError:
            raise UnknownEvent(name) from None

    def events_from(self, state: str) -> list[str]:
        """Names of events with at least one rule eligible from ``state``."""
        return [definition.name for definition in self._events.values() if any(definition.candidates(state))]
