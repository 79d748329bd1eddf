"""Name -> implementation registry for guards and hooks.

Guards have the signature ``guard(item, ctx) -> bool`` and must not change
persisted state. Hooks have the signature ``hook(item, ctx) -> None`` and may
mutate the item or call collaborators.

Registration uses decorators::

    registry = Registry()

    @registry.guard
    def has_sku(item, ctx):
        return bool(item.sku)

    @registry.hook(name="publish_state")
    def publish(item, ctx):
        ...
"""

from collections.abc import Callable

from merchandise.exceptions import ConfigurationError

Guard = Callable[..., bool]
Hook = Callable[..., None]


class Registry:
    def __init__(self, guards: dict[str, Guard] | None = None, hooks: dict[str, Hook] | None = None):
        self._guards: dict[str, Guard] = dict(guards or {})
        self._hooks: dict[str, Hook] = dict(hooks or {})

    def guard(self, fn: Guard | None = None, *, name: str | None = None):
        return self._register(self._guards, "Guard", fn, name)

    def hook(self, fn: Hook | None = None, *, name: str | None = None):
        return self._register(self._hooks, "Hook", fn, name)

    @staticmethod
    def _register(table, kind, fn, name):
        def decorator(func):
            key = name or func.__name__
            if key in table and table[key] is not func:
                raise ConfigurationError(f"{kind} '{key}' is registered twice")
            table[key] = func
            return func

        if fn is not None:
            return decorator(fn)
        return decorator

    def merge(self, other: "Registry") -> "Registry":
        """Return a new registry with ``other``'s entries overriding this one's."""
        return Registry(
            guards={**self._guards, **other._guards},
            hooks={**self._hooks, **other._hooks},
        )

    def has_guard(self, name: str) -> bool:
        return name in self._guards

    def has_hook(self, name: str) -> bool:
        return name in self._hooks

    def get_guard(self, name: str) -> Guard:
        try:
            return self._guards[name]
        except KeyError:
            raise ConfigurationError(f"Guard '{name}' is not registered") from None

    def get_hook(self, name: str) -> Hook:
        try:
            return self._hooks[name]
        except KeyError:
            raise ConfigurationError(f"Hook '{name}' is not registered") from None
