"""Pre-commit hooks of the item lifecycle.

These run inside the transition's transaction; an exception from any of them
rolls the whole transition back. The few that call best-effort collaborators
catch and log instead.
"""

from datetime import timedelta

import structlog

from merchandise.config import get_settings
from merchandise.domain import item_lifecycle
from merchandise.item.item import REITEMIZATION_LISTING_HOLD, ItemState
from merchandise.lifecycle.audit import AuditRecorder

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Time spent in a state
# ---------------------------------------------------------------------------
def _accrue_time_in(state: ItemState, attribute: str, item, ctx) -> None:
    # Re-affirming the same state is not a departure
    if ctx.to_state == state.value:
        return

    started = ctx.repository.stay_started_at(item.item_number, state.value)
    if started is None:
        return

    elapsed = int((ctx.now - started).total_seconds())
    setattr(item, attribute, (getattr(item, attribute) or 0) + max(elapsed, 0))


@item_lifecycle.hook
def update_time_in_stockroom(item, ctx):
    _accrue_time_in(ItemState.STOCKROOM, "seconds_in_stockroom", item, ctx)


@item_lifecycle.hook
def update_time_in_cart(item, ctx):
    _accrue_time_in(ItemState.RESERVED, "seconds_in_cart", item, ctx)


@item_lifecycle.hook
def update_time_in_review(item, ctx):
    _accrue_time_in(ItemState.UNDER_REVIEW, "seconds_in_review", item, ctx)


@item_lifecycle.hook
def create_delayed_listing_job(item, ctx):
    """Leaving review for the stockroom schedules a duplicate-listing check."""
    if ctx.to_state != ItemState.STOCKROOM.value:
        return

    delay = timedelta(minutes=get_settings().duplicate_listing_delay_minutes)
    try:
        ctx.collaborators.jobs.enqueue("list_duplicate_item", {"item_number": item.item_number}, delay=delay)
    except Exception as e:
        logger.warning(
            "Could not enqueue duplicate listing job",
            item_number=item.item_number,
            error=str(e),
        )


# ---------------------------------------------------------------------------
# Stamps
# ---------------------------------------------------------------------------
@item_lifecycle.hook
def set_ready_to_list_at(item, ctx):
    AuditRecorder.stamp(item, "ready_to_list_at", ctx.now)


@item_lifecycle.hook
def ensure_stockroom_at(item, ctx):
    AuditRecorder.stamp(item, "stockroom_at", ctx.now)


@item_lifecycle.hook
def backfill_stockroom_time(item, ctx):
    AuditRecorder.stamp(item, "stockroom_at", ctx.now)


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
@item_lifecycle.hook
def recalculate_price_and_final_sale(item, ctx):
    item.final_sale = bool(ctx.collaborators.pricing.recalculate_price_and_final_sale(item))


@item_lifecycle.hook
def calculate_score(item, ctx):
    item.score = ctx.collaborators.pricing.calculate_score(item)


@item_lifecycle.hook
def set_price_for_stockroom(item, ctx):
    ctx.collaborators.pricing.set_price_for_stockroom(item)


@item_lifecycle.hook
def update_price_on_purchase(item, ctx):
    """Align the stored price with what the customer paid. Never blocks a purchase."""
    try:
        ctx.collaborators.pricing.update_price_on_purchase(item)
    except Exception as e:
        logger.warning(
            "Failed to update price on purchase",
            item_number=item.item_number,
            error=str(e),
        )


@item_lifecycle.hook
def freeze_price(item, ctx):
    ctx.collaborators.pricing.freeze_price(item)
    item.price_frozen = True


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------
@item_lifecycle.hook
def set_consignment_payout(item, ctx):
    ctx.collaborators.payouts.apply_consignment_payout(item)


# ---------------------------------------------------------------------------
# Flags and holds
# ---------------------------------------------------------------------------
@item_lifecycle.hook
def unlist_from_review(item, ctx):
    ctx.collaborators.flags.resolve_review_flags(item.item_number)


@item_lifecycle.hook
def unset_reclaim(item, ctx):
    ctx.collaborators.flags.resolve_reclaim_flags(item.item_number)


@item_lifecycle.hook
def set_reitemization_listing_hold(item, ctx):
    if not item.listing_hold:
        item.listing_hold = REITEMIZATION_LISTING_HOLD


@item_lifecycle.hook
def clear_stockroom_reason(item, ctx):
    item.stockroom_reason = None
