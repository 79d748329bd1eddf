"""Tests for dry-run queries and item registration."""

import pytest
from protean.exceptions import ValidationError
from sqlalchemy.exc import IntegrityError
from merchandise.exceptions import DuplicateItem, UnknownEvent
from merchandise.item.registration import register_item
from merchandise.item.repository import ItemRepository


class TestCanFire:
    def test_reports_the_destination_without_writing(self, lifecycle, make_item, load_item, history_of, collaborators):
        item_number = make_item("reserved", listable=True)
        collaborators.flags.exclusive.add(item_number)
        history_before = history_of(item_number)

        assert lifecycle.can_fire(item_number, "release") == "partner_listed"

        assert load_item(item_number).state == "reserved"
        assert history_of(item_number) == history_before
        assert collaborators.notifications.published == []

    def test_none_when_no_rule_applies(self, lifecycle, make_item):
        item_number = make_item()

        assert lifecycle.can_fire(item_number, "mark_ready_to_list") is None

    def test_unknown_event(self, lifecycle, make_item):
        with pytest.raises(UnknownEvent):
            lifecycle.can_fire(make_item(), "teleport")


class TestAvailableEvents:
    def test_events_from_drafted(self, lifecycle, make_item):
        events = lifecycle.available_events(make_item())

        assert "hold" in events
        assert "postprocess_dc_item" in events
        assert "mark_ready_to_list" not in events
        assert "release" not in events

    def test_terminal_state_has_no_events(self, lifecycle, make_item):
        assert lifecycle.available_events(make_item("dropshipping_deleted")) == []


class TestRegistration:
    def test_new_item_starts_drafted_with_history(self, session_factory, collaborators, clock, history_of):
        item = register_item(
            session_factory,
            "ITEM-NEW",
            collaborators=collaborators,
            clock=clock,
            source="intake",
            sku="SKU-9",
        )

        assert item.state == "drafted"
        assert item.sku == "SKU-9"
        assert item.listable is False
        assert history_of("ITEM-NEW") == [("drafted", "intake")]

        [payload] = collaborators.notifications.on_topic("ops.item_update")
        assert payload["state"] == "drafted"
        assert payload["data"]["previous_state"] is None

    def test_duplicate_item_number(self, session_factory, collaborators, make_item):
        item_number = make_item()

        with pytest.raises(DuplicateItem):
            register_item(session_factory, item_number, collaborators=collaborators)

    def test_number_taken_after_the_check_is_a_duplicate(self, session_factory, collaborators, make_item, monkeypatch):
        item_number = make_item()
        real_exists = ItemRepository.exists
        checks = []

        # The first check runs before the other writer has committed
        def stale_first_check(repository, number):
            checks.append(number)
            return len(checks) > 1 and real_exists(repository, number)

        monkeypatch.setattr(ItemRepository, "exists", stale_first_check)

        with pytest.raises(DuplicateItem) as exc_info:
            register_item(session_factory, item_number, collaborators=collaborators)

        assert exc_info.value.item_number == item_number
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_lifecycle_managed_fields_are_rejected(self, session_factory, collaborators, history_of):
        with pytest.raises(ValidationError) as exc_info:
            register_item(session_factory, "ITEM-FORCED", collaborators=collaborators, state="listed", created_at=None)

        assert set(exc_info.value.messages) == {"state", "created_at"}
        assert history_of("ITEM-FORCED") == []
        assert collaborators.notifications.published == []

    def test_publish_failure_keeps_the_item(self, session_factory, collaborators, load_item):
        collaborators.notifications.configure(should_succeed=False)

        register_item(session_factory, "ITEM-QUIET", collaborators=collaborators)

        assert load_item("ITEM-QUIET").state == "drafted"

    def test_item_number_is_immutable(self, session_factory, collaborators, clock):
        item = register_item(session_factory, "ITEM-FIXED", collaborators=collaborators, clock=clock)

        with pytest.raises(ValidationError, match="cannot change"):
            item.item_number = "ITEM-OTHER"
