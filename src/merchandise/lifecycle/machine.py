"""State machine definition: states, transition table and resolved guards/hooks.

Construction verifies that every state, guard and hook a rule, event or state
refers to is registered, so a misspelt name fails at startup rather than in
the middle of a transition.
"""

from merchandise.exceptions import ConfigurationError
from merchandise.lifecycle.registry import Guard, Hook, Registry
from merchandise.lifecycle.rules import ANY, EventDefinition, TransitionTable
from merchandise.lifecycle.states import StateRegistry


class StateMachine:
    def __init__(self, states: StateRegistry, table: TransitionTable, registry: Registry):
        self.states = states
        self.table = table
        self._guards: dict[str, Guard] = {}
        self._hooks: dict[str, Hook] = {}

        problems = []
        for definition in table:
            problems.extend(self._resolve_event(definition, registry))
        for name in states:
            for hook in states.get(name).hook_names():
                problems.extend(self._resolve_hook(hook, registry, f"state '{name}'"))

        if problems:
            raise ConfigurationError("Invalid state machine: " + "; ".join(problems))

    def _resolve_event(self, definition: EventDefinition, registry: Registry) -> list[str]:
        problems = []
        where = f"event '{definition.name}'"

        for rule in definition.rules:
            if rule.from_states != ANY:
                for name in rule.from_states:
                    if name not in self.states:
                        problems.append(f"{where} transitions from unknown state '{name}'")
            if rule.to_state not in self.states:
                problems.append(f"{where} transitions to unknown state '{rule.to_state}'")
            if rule.guard is not None:
                if registry.has_guard(rule.guard):
                    self._guards[rule.guard] = registry.get_guard(rule.guard)
                else:
                    problems.append(f"{where} references unknown guard '{rule.guard}'")
            if rule.after is not None:
                problems.extend(self._resolve_hook(rule.after, registry, where))

        for hook in definition.before + definition.after + definition.after_commit:
            problems.extend(self._resolve_hook(hook, registry, where))

        return problems

    def _resolve_hook(self, name: str, registry: Registry, where: str) -> list[str]:
        if not registry.has_hook(name):
            return [f"{where} references unknown hook '{name}'"]
        self._hooks[name] = registry.get_hook(name)
        return []

    @property
    def initial_state(self) -> str:
        return self.states.initial

    def event(self, name: str) -> EventDefinition:
        return self.table.get(name)

    def guard(self, name: str) -> Guard:
        return self._guards[name]

    def hook(self, name: str) -> Hook:
        return self._hooks[name]
