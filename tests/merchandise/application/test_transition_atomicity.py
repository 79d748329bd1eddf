"""Tests that a failed transition leaves no trace: state, history and messages."""

import pytest
from merchandise.domain import item_lifecycle
from merchandise.exceptions import GuardFailure, PersistenceFailure, PreCommitHookFailure, TransitionFailed
from merchandise.item.lifecycle import ITEM_EVENTS, ITEM_STATES, create_lifecycle_engine
from merchandise.lifecycle.machine import StateMachine
from merchandise.lifecycle.registry import Registry
from merchandise.lifecycle.rules import TransitionTable, event, transitions


def _engine_with(session_factory, collaborators, clock, *events, hooks=None):
    registry = item_lifecycle.merge(Registry(hooks=hooks or {}))
    table = TransitionTable(list(ITEM_EVENTS) + list(events))
    machine = StateMachine(ITEM_STATES, table, registry)
    return create_lifecycle_engine(session_factory, collaborators=collaborators, clock=clock, machine=machine)


class TestPreCommitHookFailure:
    def test_failing_enter_hook_rolls_back(self, lifecycle, make_item, load_item, history_of, collaborators):
        item_number = make_item("ready_to_list", listable=True)
        history_before = history_of(item_number)
        collaborators.pricing.configure(should_succeed=False, failure_reason="pricing offline")

        with pytest.raises(PreCommitHookFailure) as exc:
            lifecycle.fire(item_number, "list")

        assert exc.value.phase == "enter"
        assert exc.value.hook == "recalculate_price_and_final_sale"
        assert "pricing offline" in str(exc.value.cause)

        item = load_item(item_number)
        assert item.state == "ready_to_list"
        assert item.listed_at is None
        assert history_of(item_number) == history_before
        assert collaborators.notifications.published == []

    def test_hook_mutations_before_the_failure_are_discarded(self, session_factory, collaborators, clock, make_item, load_item):
        def set_reason(item, ctx):
            item.stockroom_reason = "changed by hook"

        def explode(item, ctx):
            raise RuntimeError("boom")

        lifecycle = _engine_with(
            session_factory,
            collaborators,
            clock,
            event("hold_badly", transitions("drafted", "held"), before="set_reason", after="explode"),
            hooks={"set_reason": set_reason, "explode": explode},
        )
        item_number = make_item(stockroom_reason="original")

        with pytest.raises(PreCommitHookFailure) as exc:
            lifecycle.fire(item_number, "hold_badly")

        assert exc.value.phase == "after"
        item = load_item(item_number)
        assert item.state == "drafted"
        assert item.stockroom_reason == "original"

    def test_failure_is_a_transition_failure(self):
        assert issubclass(PreCommitHookFailure, TransitionFailed)
        assert issubclass(GuardFailure, TransitionFailed)
        assert issubclass(PersistenceFailure, TransitionFailed)


class TestGuardFailure:
    def test_raising_guard_aborts_instead_of_falling_through(self, lifecycle, make_item, load_item, collaborators):
        item_number = make_item("reserved", listable=True)
        collaborators.inventory.configure(should_succeed=False, failure_reason="inventory timeout")

        with pytest.raises(GuardFailure) as exc:
            lifecycle.fire(item_number, "release")

        assert exc.value.guard == "misplaced"
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert load_item(item_number).state == "reserved"


class TestPersistenceFailure:
    def test_constraint_violation_rolls_back(self, session_factory, collaborators, clock, make_item, load_item, history_of):
        def break_required_field(item, ctx):
            item.listable = None

        lifecycle = _engine_with(
            session_factory,
            collaborators,
            clock,
            event("hold_invalid", transitions("drafted", "held"), after="break_required_field"),
            hooks={"break_required_field": break_required_field},
        )
        item_number = make_item()
        history_before = history_of(item_number)

        with pytest.raises(PersistenceFailure):
            lifecycle.fire(item_number, "hold_invalid")

        assert load_item(item_number).state == "drafted"
        assert history_of(item_number) == history_before


class TestStateOwnership:
    def test_hook_may_not_move_the_item(self, session_factory, collaborators, clock, make_item, load_item):
        def sneak(item, ctx):
            item.state = "lost"

        lifecycle = _engine_with(
            session_factory,
            collaborators,
            clock,
            event("hold_sneaky", transitions("drafted", "held"), after="sneak"),
            hooks={"sneak": sneak},
        )
        item_number = make_item()

        with pytest.raises(TransitionFailed, match="owned by the engine"):
            lifecycle.fire(item_number, "hold_sneaky")

        assert load_item(item_number).state == "drafted"
