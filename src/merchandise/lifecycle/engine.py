"""Lifecycle engine: fires events against items.

A ``fire`` call:

- resolves the event (``UnknownEvent`` before storage is touched);
- takes the item's exclusive lock and reloads it ``FOR UPDATE`` in a fresh
  session, so rule selection always sees the latest committed state;
- picks the first rule whose from-set holds the current state and whose guard
  passes (``NoApplicableTransition`` otherwise);
- runs the pre-commit pipeline, persists the item and appends one history
  record, then commits, all in one transaction;
- writes the item only if its version is still the one it loaded. When a
  writer the lock does not cover (another process, or a database without row
  locks) committed first, the whole selection runs again against the new
  state, up to ``conflict_retries`` times, then ``ConcurrentUpdate`` is raised;
- releases the lock and runs the event's after-commit hooks, each isolated.

Re-firing a rule whose destination equals the current state runs the whole
pipeline again, including state hooks and a new history record. First-arrival
stamps are set-once, so they stay put.
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from merchandise.exceptions import (
    ConcurrentUpdate,
    GuardFailure,
    NoApplicableTransition,
    PersistenceFailure,
    TransitionFailed,
    UnknownState,
)
from merchandise.lifecycle.audit import AuditRecorder
from merchandise.lifecycle.context import EventInvocation, LifecycleContext, TransitionContext
from merchandise.lifecycle.locking import EntityLocks
from merchandise.lifecycle.machine import StateMachine
from merchandise.lifecycle.notifier import CommitNotifier
from merchandise.lifecycle.pipeline import HookPipeline
from merchandise.lifecycle.result import CommittedTransition, TransitionResult
from merchandise.lifecycle.rules import EventDefinition, TransitionRule

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def identity_of(item) -> str:
    """Accept either an entity or its identity."""
    if isinstance(item, str):
        return item
    return item.identity


class LifecycleEngine:
    def __init__(
        self,
        machine: StateMachine,
        session_factory: sessionmaker[Session],
        *,
        repository_cls,
        audit: AuditRecorder,
        collaborators=None,
        clock: Callable[[], datetime] | None = None,
        locks: EntityLocks | None = None,
        conflict_retries: int = 3,
    ):
        self.machine = machine
        self.session_factory = session_factory
        self.repository_cls = repository_cls
        self.audit = audit
        self.collaborators = collaborators
        self.clock = clock or utcnow
        self.locks = locks or EntityLocks()
        self.conflict_retries = conflict_retries
        self.pipeline = HookPipeline(machine)
        self.notifier = CommitNotifier(machine)

    # -------------------------------------------------------------------
    # Firing events
    # -------------------------------------------------------------------
    def fire(
        self,
        item,
        event: str,
        context: LifecycleContext | None = None,
        *,
        source: str | None = None,
        **params,
    ) -> TransitionResult:
        """Fire ``event`` on ``item`` (an entity or its identity)."""
        item_number = identity_of(item)
        definition = self.machine.event(event)
        invocation, collaborators = self._invocation(event, context, source, params)

        with structlog.contextvars.bound_contextvars(item_number=item_number, event=event):
            committed, snapshot = self._commit_with_retries(item_number, definition, invocation, collaborators)

            logger.info(
                "Item transitioned",
                from_state=committed.from_state,
                to_state=committed.to_state,
                source=source,
            )

            post_commit = self._after_commit(definition, snapshot, committed, invocation, collaborators)

        return TransitionResult(committed=committed, post_commit=post_commit)

    def can_fire(self, item, event: str, context: LifecycleContext | None = None, **params) -> str | None:
        """Return the state ``event`` would lead to, or ``None``. Nothing is written."""
        item_number = identity_of(item)
        definition = self.machine.event(event)
        invocation, collaborators = self._invocation(event, context, None, params)

        with self.session_factory() as session:
            repository = self.repository_cls(session)
            entity = repository.get(item_number)
            self._check_state(entity.state)
            ctx = TransitionContext(
                invocation=invocation,
                from_state=entity.state,
                to_state=None,
                collaborators=collaborators,
                repository=repository,
                now=self.clock(),
            )
            rule = self._select_rule(definition, entity, ctx)
            session.rollback()

        return rule.to_state if rule is not None else None

    def available_events(self, item) -> list[str]:
        """Events with a rule eligible from the item's current state, guards not evaluated."""
        with self.session_factory() as session:
            entity = self.repository_cls(session).get(identity_of(item))
            self._check_state(entity.state)
            return self.machine.table.events_from(entity.state)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _invocation(self, event, context, source, params):
        context = context or LifecycleContext()
        invocation = EventInvocation(event=event, source=source, params={**context.params, **params})
        collaborators = context.collaborators if context.collaborators is not None else self.collaborators
        return invocation, collaborators

    def _check_state(self, state: str) -> None:
        if state not in self.machine.states:
            raise UnknownState(state)

    def _select_rule(self, definition: EventDefinition, entity, ctx: TransitionContext) -> TransitionRule | None:
        for rule in definition.candidates(entity.state):
            if rule.guard is None:
                return rule

            guard = self.machine.guard(rule.guard)
            try:
                passed = guard(entity, replace(ctx, to_state=rule.to_state))
            except Exception as exc:
                raise GuardFailure(rule.guard, exc) from exc

            if passed:
                return rule
        return None

    def _commit_with_retries(self, item_number, definition, invocation, collaborators):
        conflicts = 0
        while True:
            try:
                with self.locks.hold(item_number):
                    return self._commit_transition(item_number, definition, invocation, collaborators)
            except ConcurrentUpdate:
                conflicts += 1
                if conflicts > self.conflict_retries:
                    raise
                logger.warning("Item changed by another writer, selecting again", conflicts=conflicts)

    def _commit_transition(self, item_number, definition, invocation, collaborators):
        now = self.clock()
        session = self.session_factory()
        try:
            with session.begin():
                repository = self.repository_cls(session)
                entity = repository.get_for_update(item_number)
                self._check_state(entity.state)

                ctx = TransitionContext(
                    invocation=invocation,
                    from_state=entity.state,
                    to_state=None,
                    collaborators=collaborators,
                    repository=repository,
                    now=now,
                )
                rule = self._select_rule(definition, entity, ctx)
                if rule is None:
                    logger.info("No applicable transition", state=entity.state)
                    raise NoApplicableTransition(definition.name, entity.state, item_number)

                ctx = replace(ctx, to_state=rule.to_state)
                hooks = self.pipeline.run(entity, definition, rule, ctx)

                if entity.state != rule.to_state:
                    raise TransitionFailed(
                        f"Hooks moved item to '{entity.state}' instead of '{rule.to_state}'; "
                        "state is owned by the engine"
                    )

                repository.add(entity)
                history = self.audit.record(session, entity, invocation.source, now)
        except StaleDataError as exc:
            logger.warning("Item was written concurrently", error=str(exc))
            raise ConcurrentUpdate(item_number, exc) from exc
        except SQLAlchemyError as exc:
            logger.error("Transition commit failed", error=str(exc))
            raise PersistenceFailure(exc) from exc
        finally:
            session.close()

        committed = CommittedTransition(
            item_number=item_number,
            event=definition.name,
            from_state=ctx.from_state,
            to_state=rule.to_state,
            history_id=history.id,
            recorded_at=now,
            hooks=hooks,
        )
        return committed, entity

    def _after_commit(self, definition, snapshot, committed, invocation, collaborators):
        if not definition.after_commit:
            return ()

        with self.session_factory() as session:
            ctx = TransitionContext(
                invocation=invocation,
                from_state=committed.from_state,
                to_state=committed.to_state,
                collaborators=collaborators,
                repository=self.repository_cls(session),
                now=committed.recorded_at,
            )
            return self.notifier.run(definition.after_commit, snapshot, ctx)
