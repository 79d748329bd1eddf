"""The item lifecycle: states, events and the engine that drives them.

Rules inside an event are evaluated top to bottom and the first eligible one
wins, so their order is part of the behaviour. ``release`` for instance must
check ``misplaced`` and ``flagged`` before falling through to ``listed`` and
finally ``stockroom``.
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from merchandise.config import get_settings
from merchandise.domain import item_lifecycle

# Guards and hooks register themselves on import
from merchandise.item import guards, hooks, notifications  # noqa: F401
from merchandise.item.item import FIRST_ARRIVAL_STAMPS, ItemHistory, ItemState
from merchandise.item.repository import ItemRepository
from merchandise.lifecycle.audit import AuditRecorder
from merchandise.lifecycle.engine import LifecycleEngine
from merchandise.lifecycle.locking import EntityLocks
from merchandise.lifecycle.machine import StateMachine
from merchandise.lifecycle.rules import TransitionTable, event, transitions
from merchandise.lifecycle.states import StateRegistry, state

S = ItemState


def _names(*states: ItemState) -> tuple[str, ...]:
    return tuple(member.value for member in states)


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------
_STATE_HOOKS = {
    S.STOCKROOM: {"exit": "update_time_in_stockroom"},
    S.LISTED: {"enter": ("recalculate_price_and_final_sale", "calculate_score")},
    S.READY_TO_LIST: {"before_enter": "set_ready_to_list_at"},
    S.RESERVED: {"exit": "update_time_in_cart"},
    S.UNDER_REVIEW: {"exit": ("update_time_in_review", "create_delayed_listing_job")},
}

ITEM_STATES = StateRegistry(
    [state(member.value, **_STATE_HOOKS.get(member, {})) for member in ItemState],
    initial=S.DRAFTED.value,
)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
PUBLISH = ("publish_state", "publish_item_feed_event")

ITEM_EVENTS = TransitionTable(
    [
        event(
            "list",
            transitions(S.RESERVED.value, S.LOST.value, guard="misplaced"),
            transitions(
                S.RESERVED.value,
                S.RECLAIMABLE.value,
                guard="should_release_to_reclaimable",
                after="unset_reclaim",
            ),
            transitions(S.RESERVED.value, S.CONSIGNMENT_DELISTED.value, guard="release_to_delisted"),
            transitions(
                _names(S.READY_TO_LIST, S.RESERVED, S.PHOTO_SHOOT, S.CONSIGNMENT_DELISTED, S.PARTNER_LISTED),
                S.LISTED.value,
                guard="should_be_listed",
            ),
            transitions(S.STOCKROOM.value, S.LISTED.value, guard="should_transition_from_stockroom_to_listed"),
            transitions(S.RESERVED.value, S.STOCKROOM.value, guard="has_sku"),
            transitions(S.RECLAIMABLE.value, S.LISTED.value, guard="can_list_reclaimable"),
            after_commit=PUBLISH,
        ),
        event(
            "partner_list",
            transitions(S.READY_TO_LIST.value, S.PARTNER_LISTED.value, guard="partner_listable"),
            after_commit=PUBLISH,
        ),
        event(
            "mark_ready_to_list",
            transitions(S.STOCKROOM.value, S.STOCKROOM.value, guard="list_in_stockroom"),
            transitions(S.STOCKROOM.value, S.READY_TO_LIST.value, guard="listable"),
            after_commit=PUBLISH,
        ),
        event(
            "postprocess_dc_item",
            transitions(S.STOCKROOM.value, S.LISTED.value, guard="wholesale_listable"),
            transitions(S.STOCKROOM.value, S.STOCKROOM.value, guard="wholesale_stockroomable"),
            transitions(S.STOCKROOM.value, S.READY_TO_LIST.value, guard="stockroom_guards_cleared"),
            transitions(S.UNDER_REVIEW.value, S.STOCKROOM.value),
            transitions(S.DRAFTED.value, S.STOCKROOM.value, guard="list_in_stockroom"),
            transitions(S.DRAFTED.value, S.READY_TO_LIST.value, guard="requires_no_stockroom_wait"),
            transitions(_names(S.DRAFTED, S.STOCKROOM), S.STOCKROOM.value),
            after=("unlist_from_review", "backfill_stockroom_time"),
            after_commit=PUBLISH + ("nullify_listed_price",),
        ),
        event(
            "stockroom_relisted_item",
            transitions(S.DRAFTED.value, S.STOCKROOM.value),
            after_commit=PUBLISH,
        ),
        event(
            "photo_shoot",
            transitions(S.LISTED.value, S.PHOTO_SHOOT.value),
            after_commit=PUBLISH + ("relist_after_7_days",),
        ),
        event(
            "consignment_delist",
            transitions(
                _names(S.LISTED, S.RECLAIMABLE),
                S.CONSIGNMENT_DELISTED.value,
                guard="consignment_delist_allowed",
            ),
            after_commit=PUBLISH,
        ),
        event(
            "make_reclaimable",
            transitions(S.LISTED.value, S.RECLAIMABLE.value),
            after_commit=PUBLISH,
        ),
        event(
            "queue_for_scrap",
            transitions(S.LISTED.value, S.TO_BE_SCRAPPED.value),
            transitions(S.STOCKROOM.value, S.TO_BE_SCRAPPED.value, guard="paid_out"),
            after_commit=PUBLISH + ("release_another",),
        ),
        event(
            "scrap",
            transitions(_names(S.TO_BE_SCRAPPED, S.SCRAPPED), S.SCRAPPED.value),
            after_commit=PUBLISH,
        ),
        event(
            "reserve",
            transitions(_names(S.LISTED, S.PARTNER_LISTED, S.RECLAIMABLE), S.RESERVED.value),
            transitions(S.RESERVED.value, S.RESERVED.value, guard="reclaim_on_release"),
            transitions(S.STOCKROOM.value, S.RESERVED.value, guard="remade_reservable"),
            after_commit=PUBLISH + ("release_another",),
        ),
        event(
            "requested_by_customer",
            transitions(S.RESERVED.value, S.REQUESTED_BY_CUSTOMER.value),
            transitions(S.LISTED.value, S.REQUESTED_BY_CUSTOMER.value),
            after_commit=PUBLISH,
        ),
        event(
            "flag_for_review",
            transitions(
                _names(S.LISTED, S.STOCKROOM, S.READY_TO_LIST, S.PARTNER_LISTED),
                S.UNDER_REVIEW.value,
            ),
            after_commit=PUBLISH,
        ),
        event(
            "release",
            transitions(S.RESERVED.value, S.LOST.value, guard="misplaced"),
            transitions(S.RESERVED.value, S.UNDER_REVIEW.value, guard="flagged"),
            transitions(
                S.RESERVED.value,
                S.RECLAIMABLE.value,
                guard="should_release_to_reclaimable",
                after="unset_reclaim",
            ),
            transitions(S.RESERVED.value, S.PARTNER_LISTED.value, guard="exclusive"),
            transitions(S.RESERVED.value, S.CONSIGNMENT_DELISTED.value, guard="release_to_delisted"),
            transitions(S.RESERVED.value, S.LISTED.value, guard="should_release_to_listed"),
            transitions(S.RESERVED.value, S.STOCKROOM.value),
            after_commit=PUBLISH,
        ),
        event(
            "purchase",
            transitions(_names(S.RESERVED, S.LISTED_AT_STORE, S.PARTNER_LISTED), S.PURCHASED.value),
            after=("update_price_on_purchase", "freeze_price"),
            after_commit=PUBLISH + ("record_payout",),
        ),
        event(
            "mark_not_packed",
            transitions(S.PACKED.value, S.NOT_PACKED.value),
            transitions(S.PURCHASED.value, S.NOT_PACKED.value),
            transitions(S.REQUESTED_BY_CUSTOMER.value, S.NOT_PACKED.value, guard="item_box_item"),
            after="set_consignment_payout",
            after_commit=PUBLISH,
        ),
        event(
            "hold",
            transitions(S.DRAFTED.value, S.HELD.value),
            after_commit=PUBLISH,
        ),
        event(
            "remove_hold",
            transitions(S.HELD.value, S.DRAFTED.value),
            after_commit=PUBLISH,
        ),
        event(
            "pack",
            transitions(S.PURCHASED.value, S.PACKED.value),
            transitions(S.REQUESTED_BY_CUSTOMER.value, S.HELD_BY_CUSTOMER.value, guard="item_box_item"),
            after="set_consignment_payout",
            after_commit=PUBLISH,
        ),
        event(
            "item_box_purchase",
            transitions(S.HELD_BY_CUSTOMER.value, S.PACKED.value, guard="item_box_item"),
            transitions(S.NOT_PAID.value, S.PACKED_NO_COSTS.value, guard="order_in_terminal_state"),
            after_commit=PUBLISH,
        ),
        event(
            "destroy_processing",
            transitions(
                _names(S.DRAFTED, S.STOCKROOM, S.HELD, S.UNDER_REVIEW),
                S.DESTROYED_PROCESSING.value,
            ),
            after_commit=PUBLISH + ("nullify_listed_price",),
        ),
        event(
            "unlist",
            transitions(
                _names(S.STOCKROOM, S.READY_TO_LIST, S.LISTED, S.PARTNER_LISTED),
                S.STOCKROOM.value,
                guard="listing_hold",
            ),
            transitions(_names(S.STOCKROOM, S.READY_TO_LIST, S.LISTED, S.PARTNER_LISTED), S.DRAFTED.value),
            after="set_reitemization_listing_hold",
            after_commit=PUBLISH,
        ),
        event(
            "mark_lost",
            transitions(
                _names(
                    S.LISTED,
                    S.STOCKROOM,
                    S.READY_TO_LIST,
                    S.DRAFTED,
                    S.UNDER_REVIEW,
                    S.TO_BE_TRANSFERRED,
                    S.TO_BE_SCRAPPED,
                ),
                S.LOST.value,
            ),
            after_commit=PUBLISH,
        ),
        event(
            "not_paid",
            transitions(_names(S.HELD_BY_CUSTOMER, S.NOT_PAID), S.NOT_PAID.value),
            after_commit="publish_state",
        ),
        event(
            "receive_return_and_destroy",
            transitions(
                _names(
                    S.PACKED,
                    S.FLAWED_AFTER_PURCHASE,
                    S.HELD_BY_CUSTOMER,
                    S.NOT_PAID,
                    S.RETURNED,
                    S.RETURNED_AND_DESTROYED,
                    S.RETURNED_NOT_PAID,
                ),
                S.RETURNED_AND_DESTROYED.value,
            ),
            after_commit=PUBLISH,
        ),
        event(
            "receive_return",
            transitions(S.NOT_PAID.value, S.RETURNED_NOT_PAID.value),
            transitions(
                _names(S.HELD_BY_CUSTOMER, S.RETURNED_NOT_PAID, S.NOT_PAID),
                S.RETURNED_NOT_PAID.value,
                guard="item_box_item",
            ),
            transitions(S.PACKED.value, S.RETURNED_LATE.value, guard="item_box_item"),
            transitions(_names(S.PACKED, S.FLAWED_AFTER_PURCHASE, S.RETURNED), S.RETURNED.value),
            transitions(S.RETURNED_AND_DESTROYED.value, S.RETURNED_AND_DESTROYED.value),
            after_commit=PUBLISH,
        ),
        event(
            "mark_as_returned_and_destroyed",
            transitions(
                _names(S.PACKED, S.FLAWED_AFTER_PURCHASE, S.RETURNED),
                S.RETURNED_AND_DESTROYED.value,
            ),
            after_commit=PUBLISH,
        ),
        event(
            "flag_for_relist",
            transitions(S.LISTED.value, S.FLAGGED_FOR_RELISTING.value),
            after_commit="publish_state",
        ),
        event(
            "move_to_relisted",
            transitions(S.FLAGGED_FOR_RELISTING.value, S.RELISTED.value),
            transitions(S.NOT_PAID.value, S.NOT_PAID.value),
            transitions(S.PURCHASED.value, S.RELISTED.value),
            transitions(S.REQUESTED_BY_CUSTOMER.value, S.RELISTED.value),
            after_commit=PUBLISH,
        ),
        event(
            "mark_to_be_transferred",
            transitions(_names(S.DRAFTED, S.LISTED, S.LISTED_AT_STORE), S.TO_BE_TRANSFERRED.value),
            transitions(S.STOCKROOM.value, S.TO_BE_TRANSFERRED.value, guard="stockroom_to_be_transferred"),
            before="set_price_for_stockroom",
            after_commit=PUBLISH + ("release_another",),
        ),
        event(
            "failed_to_list_at_store",
            transitions(_names(S.LISTED, S.TO_BE_TRANSFERRED), S.FAILED_TO_LIST_AT_STORE.value),
            after_commit=PUBLISH,
        ),
        event(
            "list_at_store",
            transitions(_names(S.DRAFTED, S.STOCKROOM, S.FAILED_TO_LIST_AT_STORE), S.LISTED_AT_STORE.value),
            after=("ensure_stockroom_at", "clear_stockroom_reason"),
            after_commit=PUBLISH,
        ),
        event(
            "transfer",
            transitions(S.TO_BE_TRANSFERRED.value, S.TRANSFERRED.value),
            after_commit=PUBLISH,
        ),
        event(
            "move_to_stockroom",
            transitions(S.LISTED.value, S.STOCKROOM.value),
            after_commit=PUBLISH,
        ),
        event(
            "dropshipping_delete",
            transitions(
                _names(S.LISTED, S.RESERVED, S.STOCKROOM, S.READY_TO_LIST),
                S.DROPSHIPPING_DELETED.value,
                guard="dropshipping",
            ),
            after_commit="publish_item_feed_event",
        ),
    ]
)


def build_item_machine() -> StateMachine:
    """Resolve the item states and events against the registered guards and hooks."""
    return StateMachine(ITEM_STATES, ITEM_EVENTS, item_lifecycle)


def create_item_audit() -> AuditRecorder:
    return AuditRecorder(ItemHistory, FIRST_ARRIVAL_STAMPS)


def create_lifecycle_engine(
    session_factory: sessionmaker[Session],
    collaborators=None,
    clock: Callable[[], datetime] | None = None,
    locks: EntityLocks | None = None,
    machine: StateMachine | None = None,
    conflict_retries: int | None = None,
) -> LifecycleEngine:
    """Build the engine that drives items through their lifecycle."""
    return LifecycleEngine(
        machine or build_item_machine(),
        session_factory,
        repository_cls=ItemRepository,
        audit=create_item_audit(),
        collaborators=collaborators,
        clock=clock,
        locks=locks,
        conflict_retries=get_settings().conflict_retries if conflict_retries is None else conflict_retries,
    )
