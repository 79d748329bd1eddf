"""Two-part transition result: what was committed, then how side effects went."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class HookRun:
    """A pre-commit hook that ran, tagged with its pipeline phase."""

    phase: str
    name: str


@dataclass(frozen=True)
class CommittedTransition:
    """The durable part of a transition. Always consistent with storage."""

    item_number: str
    event: str
    from_state: str
    to_state: str
    history_id: int
    recorded_at: datetime
    hooks: tuple[HookRun, ...]


@dataclass(frozen=True)
class PostCommitOutcome:
    """Best-effort outcome of one after-commit hook."""

    name: str
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TransitionResult:
    committed: CommittedTransition
    post_commit: tuple[PostCommitOutcome, ...] = ()

    @property
    def state(self) -> str:
        return self.committed.to_state

    @property
    def post_commit_failures(self) -> tuple[PostCommitOutcome, ...]:
        return tuple(outcome for outcome in self.post_commit if not outcome.succeeded)

    @property
    def fully_succeeded(self) -> bool:
        return not self.post_commit_failures
