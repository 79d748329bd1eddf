"""Lifecycle exceptions.

Raised by the lifecycle engine when a transition cannot happen. Callers
distinguish three outcomes:

- registry misconfiguration (``ConfigurationError``, ``UnknownEvent``,
  ``UnknownState``): programming errors, nothing is persisted;
- the transition did not happen (``NoApplicableTransition`` and the
  ``TransitionFailed`` family): state is unchanged and no history exists;
- the transition happened but a side effect failed: reported through
  ``TransitionResult.post_commit_failures``, never raised.
"""


class LifecycleError(Exception):
    """Base class for every lifecycle error."""


class ConfigurationError(LifecycleError):
    """A state machine references a guard, hook or state that is not registered."""


class UnknownEvent(LifecycleError):
    """The requested event is not part of the state machine."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(f"Unknown event '{event}'")


class UnknownState(LifecycleError):
    """A state outside the registered set was referenced or found on an item."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Unknown state '{state}'")


class ItemNotFound(LifecycleError):
    """No item exists for the given item number."""

    def __init__(self, item_number: str):
        self.item_number = item_number
        super().__init__(f"Item '{item_number}' does not exist")


class NoApplicableTransition(LifecycleError):
    """No rule of the event matched the item's current state and guards."""

    def __init__(self, event: str, state: str, item_number: str | None = None):
        self.event = event
        self.state = state
        self.item_number = item_number
        super().__init__(f"Event '{event}' cannot fire from state '{state}'")


class TransitionFailed(LifecycleError):
    """A selected transition was aborted and rolled back."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


class GuardFailure(TransitionFailed):
    """A guard predicate raised instead of answering true or false."""

    def __init__(self, guard: str, cause: BaseException):
        self.guard = guard
        super().__init__(f"Guard '{guard}' raised {type(cause).__name__}: {cause}", cause)


class PreCommitHookFailure(TransitionFailed):
    """A hook inside the transaction raised; the transition was rolled back."""

    def __init__(self, phase: str, hook: str, cause: BaseException):
        self.phase = phase
        self.hook = hook
        super().__init__(f"{phase} hook '{hook}' raised {type(cause).__name__}: {cause}", cause)


class PersistenceFailure(TransitionFailed):
    """Writing or committing the transition failed."""

    def __init__(self, cause: BaseException):
        super().__init__(f"Could not persist transition: {cause}", cause)


class ConcurrentUpdate(PersistenceFailure):
    """Another writer committed the item after it was loaded; nothing was written."""

    def __init__(self, item_number: str, cause: BaseException):
        self.item_number = item_number
        super().__init__(cause)


class PostCommitHookFailure(LifecycleError):
    """An after-commit hook raised. Recorded on the result, never raised to callers."""

    def __init__(self, hook: str, cause: BaseException):
        self.hook = hook
        self.cause = cause
        super().__init__(f"after_commit hook '{hook}' raised {type(cause).__name__}: {cause}")


class DuplicateItem(LifecycleError):
    """An item with this item number is already registered."""

    def __init__(self, item_number: str):
        self.item_number = item_number
        super().__init__(f"Item '{item_number}' already exists")
