"""After-commit hooks of the item lifecycle.

These run once the transition is durable, against a detached snapshot of the
item. The commit notifier isolates each one: a failure is logged and reported
on the result, never raised to the caller.
"""

from datetime import timedelta

import structlog

from merchandise.config import get_settings
from merchandise.domain import item_lifecycle, merchandise
from merchandise.item.events import ItemFeedUpdated, ItemStateChanged
from merchandise.item.item import ItemState

logger = structlog.get_logger(__name__)


@item_lifecycle.hook
def publish_state(item, ctx):
    with merchandise.domain_context():
        message = ItemStateChanged(
            item_number=item.item_number,
            state=item.state,
            previous_state=ctx.from_state,
            event=ctx.event,
            source=ctx.source,
            occurred_at=ctx.now,
        )
    ctx.collaborators.notifications.publish(get_settings().publish_topic, message.to_payload())


@item_lifecycle.hook
def publish_item_feed_event(item, ctx):
    with merchandise.domain_context():
        message = ItemFeedUpdated(
            item_number=item.item_number,
            state=item.state,
            event=ctx.event,
            source=ctx.source,
            final_sale=bool(item.final_sale),
            occurred_at=ctx.now,
        )
    ctx.collaborators.notifications.publish(get_settings().item_feed_topic, message.to_payload())


@item_lifecycle.hook
def record_payout(item, ctx):
    if not item.consignment:
        return
    ctx.collaborators.payouts.record_payout(item)


@item_lifecycle.hook
def release_another(item, ctx):
    """Free up the next unit of the same SKU waiting in the stockroom."""
    if not item.sku:
        return
    ctx.collaborators.jobs.enqueue(
        "release_another",
        {"item_number": item.item_number, "sku": item.sku, "warehouse_id": item.warehouse_id},
    )


@item_lifecycle.hook
def relist_after_7_days(item, ctx):
    delay = timedelta(days=get_settings().relist_delay_days)
    ctx.collaborators.jobs.enqueue("list_item", {"item_number": item.item_number}, delay=delay)
    logger.debug("Relist scheduled", item_number=item.item_number, delay=str(delay))


@item_lifecycle.hook
def nullify_listed_price(item, ctx):
    left_review_for_stockroom = (
        ctx.from_state == ItemState.UNDER_REVIEW.value and ctx.to_state == ItemState.STOCKROOM.value
    )
    if left_review_for_stockroom or ctx.to_state == ItemState.DESTROYED_PROCESSING.value:
        ctx.collaborators.pricing.nullify_listed_price(item)
