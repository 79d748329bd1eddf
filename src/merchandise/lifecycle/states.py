"""State registry: the closed set of lifecycle states and their hooks."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from merchandise.exceptions import ConfigurationError, UnknownState


@dataclass(frozen=True)
class StateDefinition:
    """A registered state with the hook names attached to it.

    ``exit`` runs when leaving the state, ``before_enter`` and ``enter`` when
    arriving, regardless of origin or destination.
    """

    name: str
    exit: tuple[str, ...] = ()
    before_enter: tuple[str, ...] = ()
    enter: tuple[str, ...] = ()

    def hook_names(self) -> tuple[str, ...]:
        return self.exit + self.before_enter + self.enter


def state(name: str, *, exit=(), before_enter=(), enter=()) -> StateDefinition:  # noqa: A002
    """Declare a state. Hook arguments accept a single name or a sequence."""
    return StateDefinition(
        name=name,
        exit=_names(exit),
        before_enter=_names(before_enter),
        enter=_names(enter),
    )


def _names(value) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class StateRegistry:
    """Immutable lookup of states. Built once; there is no mutation API."""

    def __init__(self, definitions: Iterable[StateDefinition], initial: str):
        self._states: dict[str, StateDefinition] = {}
        for definition in definitions:
            if definition.name in self._states:
                raise ConfigurationError(f"State '{definition.name}' is declared twice")
            self._states[definition.name] = definition

        if initial not in self._states:
            raise ConfigurationError(f"Initial state '{initial}' is not registered")
        self.initial = initial

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def get(self, name: str) -> StateDefinition:
        try:
            return self._states[name]
        except KeyError:
            raise UnknownState(name) from None

    def exit_hooks(self, name: str) -> tuple[str, ...]:
        return self.get(name).exit

    def before_enter_hooks(self, name: str) -> tuple[str, ...]:
        return self.get(name).before_enter

    def enter_hooks(self, name: str) -> tuple[str, ...]:
        return self.get(name).enter
