"""Tests for the state registry: the closed set of states and their hooks."""

import pytest
from merchandise.exceptions import ConfigurationError, UnknownState
from merchandise.lifecycle.states import StateRegistry, state


def _registry():
    return StateRegistry(
        [
            state("drafted"),
            state("stockroom", exit="update_time_in_stockroom"),
            state("listed", enter=("recalculate_price_and_final_sale", "calculate_score")),
            state("ready_to_list", before_enter="set_ready_to_list_at"),
        ],
        initial="drafted",
    )


class TestStateDeclaration:
    def test_single_hook_name_is_normalized_to_tuple(self):
        definition = state("stockroom", exit="update_time_in_stockroom")
        assert definition.exit == ("update_time_in_stockroom",)
        assert definition.enter == ()

    def test_hook_names_lists_every_phase(self):
        definition = state("x", exit="a", before_enter=("b",), enter=["c", "d"])
        assert definition.hook_names() == ("a", "b", "c", "d")


class TestStateRegistry:
    def test_membership_and_size(self):
        registry = _registry()
        assert "listed" in registry
        assert "bogus" not in registry
        assert len(registry) == 4
        assert list(registry) == ["drafted", "stockroom", "listed", "ready_to_list"]

    def test_initial_state(self):
        assert _registry().initial == "drafted"

    def test_hook_lookups(self):
        registry = _registry()
        assert registry.exit_hooks("stockroom") == ("update_time_in_stockroom",)
        assert registry.before_enter_hooks("ready_to_list") == ("set_ready_to_list_at",)
        assert registry.enter_hooks("listed") == ("recalculate_price_and_final_sale", "calculate_score")
        assert registry.exit_hooks("drafted") == ()

    def test_unknown_state_lookup_raises(self):
        with pytest.raises(UnknownState) as exc:
            _registry().get("bogus")
        assert exc.value.state == "bogus"

    def test_duplicate_state_is_rejected(self):
        with pytest.raises(ConfigurationError, match="declared twice"):
            StateRegistry([state("drafted"), state("drafted")], initial="drafted")

    def test_initial_state_must_be_registered(self):
        with pytest.raises(ConfigurationError, match="Initial state"):
            StateRegistry([state("drafted")], initial="listed")
