"""Pre-commit hook pipeline.

Runs, in order, for a selected rule:

1. event ``before`` hooks
2. ``exit`` hooks of the current state
3. the in-memory state change
4. ``before_enter`` hooks of the destination
5. ``enter`` hooks of the destination
6. event ``after`` hooks
7. the rule's own ``after`` hook

A stale-version flush triggered by a hook propagates as is. Any other
exception is wrapped in ``PreCommitHookFailure`` and aborts the rest; the
engine owns the transaction and rolls it back.
"""

import structlog
from sqlalchemy.orm.exc import StaleDataError

from merchandise.exceptions import PreCommitHookFailure
from merchandise.lifecycle.context import TransitionContext
from merchandise.lifecycle.machine import StateMachine
from merchandise.lifecycle.result import HookRun
from merchandise.lifecycle.rules import EventDefinition, TransitionRule

logger = structlog.get_logger(__name__)


class HookPipeline:
    def __init__(self, machine: StateMachine):
        self.machine = machine

    def run(self, item, definition: EventDefinition, rule: TransitionRule, ctx: TransitionContext) -> tuple[HookRun, ...]:
        states = self.machine.states
        trace: list[HookRun] = []

        self._run_phase("before", definition.before, item, ctx, trace)
        self._run_phase("exit", states.exit_hooks(ctx.from_state), item, ctx, trace)

        item.state = rule.to_state

        self._run_phase("before_enter", states.before_enter_hooks(rule.to_state), item, ctx, trace)
        self._run_phase("enter", states.enter_hooks(rule.to_state), item, ctx, trace)
        self._run_phase("after", definition.after, item, ctx, trace)
        if rule.after is not None:
            self._run_phase("rule_after", (rule.after,), item, ctx, trace)

        return tuple(trace)

    def _run_phase(self, phase: str, names, item, ctx: TransitionContext, trace: list[HookRun]) -> None:
        for name in names:
            hook = self.machine.hook(name)
            try:
                hook(item, ctx)
            except StaleDataError:
                # A concurrent writer got there first; the engine reloads
                raise
            except Exception as exc:
                logger.warning(
                    "Pre-commit hook failed",
                    phase=phase,
                    hook=name,
                    error=str(exc),
                )
                raise PreCommitHookFailure(phase, name, exc) from exc
            trace.append(HookRun(phase=phase, name=name))
