"""Tests for where ``release`` sends a reserved item.

The release rules are ordered; each case below makes exactly one of them the
first eligible rule.
"""

import pytest


def _lost(c, item_number):
    c.inventory.lost.add(item_number)


def _flagged(c, item_number):
    c.flags.review.add(item_number)


def _reclaim(c, item_number):
    c.flags.reclaim.add(item_number)


def _exclusive(c, item_number):
    c.flags.exclusive.add(item_number)


def _window_closed(c, item_number):
    c.payouts.closed_windows.add(item_number)


def _nothing(c, item_number):
    pass


@pytest.mark.parametrize(
    "arrange, fields, expected",
    [
        (_lost, {"listable": True}, "lost"),
        (_flagged, {"listable": True}, "under_review"),
        (_reclaim, {"listable": True}, "reclaimable"),
        (_exclusive, {"listable": True}, "partner_listed"),
        (_window_closed, {"listable": True, "consignment": True}, "consignment_delisted"),
        (_nothing, {"listable": True}, "listed"),
        (_nothing, {"listable": False}, "stockroom"),
    ],
)
def test_release_destination(lifecycle, make_item, collaborators, arrange, fields, expected):
    item_number = make_item("reserved", **fields)
    arrange(collaborators, item_number)

    assert lifecycle.fire(item_number, "release").state == expected


class TestReleaseOrdering:
    def test_exclusive_item_goes_to_partner_listed_even_when_listable(self, lifecycle, make_item, collaborators):
        item_number = make_item("reserved", listable=True)
        collaborators.flags.exclusive.add(item_number)

        result = lifecycle.fire(item_number, "release")

        assert result.state == "partner_listed"

    def test_lost_wins_over_every_other_destination(self, lifecycle, make_item, collaborators):
        item_number = make_item("reserved", listable=True)
        collaborators.inventory.lost.add(item_number)
        collaborators.flags.review.add(item_number)
        collaborators.flags.exclusive.add(item_number)

        assert lifecycle.fire(item_number, "release").state == "lost"

    def test_release_to_reclaimable_resolves_the_reclaim(self, lifecycle, make_item, collaborators):
        item_number = make_item("reserved")
        collaborators.flags.reclaim.add(item_number)

        result = lifecycle.fire(item_number, "release")

        assert result.state == "reclaimable"
        assert ("rule_after", "unset_reclaim") in [(run.phase, run.name) for run in result.committed.hooks]
        assert item_number not in collaborators.flags.reclaim

    def test_later_rules_are_not_evaluated_once_one_matches(self, lifecycle, make_item, collaborators):
        item_number = make_item("reserved", listable=True)
        collaborators.flags.review.add(item_number)

        lifecycle.fire(item_number, "release")

        assert collaborators.flags.called("has_active_exclusive_listing") == []
