"""Commit notifier: runs after-commit hooks once the transition is durable.

Each hook is isolated: a failure is logged and captured on its outcome, the
remaining hooks still run, and nothing is raised to the caller.
"""

import structlog

from merchandise.exceptions import PostCommitHookFailure
from merchandise.lifecycle.context import TransitionContext
from merchandise.lifecycle.machine import StateMachine
from merchandise.lifecycle.result import PostCommitOutcome

logger = structlog.get_logger(__name__)


class CommitNotifier:
    def __init__(self, machine: StateMachine):
        self.machine = machine

    def run(self, names, item, ctx: TransitionContext) -> tuple[PostCommitOutcome, ...]:
        outcomes = []
        for name in names:
            hook = self.machine.hook(name)
            try:
                hook(item, ctx)
            except Exception as exc:
                logger.exception(
                    "After-commit hook failed",
                    hook=name,
                    item_number=item.identity,
                    state=item.state,
                )
                outcomes.append(PostCommitOutcome(name=name, error=PostCommitHookFailure(name, exc)))
            else:
                outcomes.append(PostCommitOutcome(name=name))
        return tuple(outcomes)
