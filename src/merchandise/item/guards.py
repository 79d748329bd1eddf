"""Guard predicates of the item lifecycle.

Each guard answers from the item's own fields and read-only collaborator
lookups; none of them writes.
"""

from merchandise.domain import item_lifecycle


@item_lifecycle.guard
def listing_hold(item, ctx):
    return bool(item.listing_hold)


@item_lifecycle.guard
def has_sku(item, ctx):
    return bool(item.sku)


@item_lifecycle.guard
def paid_out(item, ctx):
    return item.paid_out


@item_lifecycle.guard
def dropshipping(item, ctx):
    return item.dropshipping_warehouse_id is not None


# ---------------------------------------------------------------------------
# Listing eligibility
# ---------------------------------------------------------------------------
@item_lifecycle.guard
def listable(item, ctx):
    """Processing is done, an SKU slot is free and nothing holds the listing."""
    if not item.listable or item.listing_hold:
        return False
    if item.sku and not ctx.collaborators.inventory.open_slot_exists(item.sku, item.warehouse_id):
        return False
    return True


@item_lifecycle.guard
def exclusive(item, ctx):
    return ctx.collaborators.flags.has_active_exclusive_listing(item.item_number)


@item_lifecycle.guard
def should_be_listed(item, ctx):
    return listable(item, ctx) and not exclusive(item, ctx)


@item_lifecycle.guard
def should_release_to_listed(item, ctx):
    return should_be_listed(item, ctx)


@item_lifecycle.guard
def partner_listable(item, ctx):
    return item.listable and not item.listing_hold


@item_lifecycle.guard
def stockroom_guards_cleared(item, ctx):
    return item.listable and not item.belongs_in_stockroom


@item_lifecycle.guard
def list_in_stockroom(item, ctx):
    return item.listable and item.belongs_in_stockroom


@item_lifecycle.guard
def wholesale_listable(item, ctx):
    return item.upfront_wholesale and stockroom_guards_cleared(item, ctx)


@item_lifecycle.guard
def wholesale_stockroomable(item, ctx):
    return item.upfront_wholesale and list_in_stockroom(item, ctx)


@item_lifecycle.guard
def should_transition_from_stockroom_to_listed(item, ctx):
    return listable(item, ctx) and stockroom_guards_cleared(item, ctx)


@item_lifecycle.guard
def requires_no_stockroom_wait(item, ctx):
    bags = ctx.collaborators.bags
    bag_cleared = bags.is_bought_out(item.bag_number) or bags.is_processed(item.bag_number)
    return bag_cleared and listable(item, ctx)


@item_lifecycle.guard
def remade_reservable(item, ctx):
    return has_sku(item, ctx) and listable(item, ctx)


@item_lifecycle.guard
def can_list_reclaimable(item, ctx):
    return not ctx.collaborators.bags.owned_by_super_user(item.bag_number)


@item_lifecycle.guard
def stockroom_to_be_transferred(item, ctx):
    return (
        not item.listing_hold
        and item.listable
        and not item.consignment
        and ctx.collaborators.bags.is_wholesale_partner_bag(item.bag_number)
    )


# ---------------------------------------------------------------------------
# Release routing
# ---------------------------------------------------------------------------
@item_lifecycle.guard
def misplaced(item, ctx):
    return ctx.collaborators.inventory.is_lost(item.item_number)


@item_lifecycle.guard
def flagged(item, ctx):
    return ctx.collaborators.flags.is_flagged_for_review(item.item_number)


@item_lifecycle.guard
def should_release_to_reclaimable(item, ctx):
    return ctx.collaborators.flags.has_active_reclaim(item.item_number)


@item_lifecycle.guard
def reclaim_on_release(item, ctx):
    return ctx.collaborators.flags.has_active_reclaim(item.item_number)


@item_lifecycle.guard
def release_to_delisted(item, ctx):
    return item.consignment and ctx.collaborators.payouts.consignment_window_closed(item.item_number)


@item_lifecycle.guard
def consignment_delist_allowed(item, ctx):
    return release_to_delisted(item, ctx)


# ---------------------------------------------------------------------------
# Item box orders
# ---------------------------------------------------------------------------
@item_lifecycle.guard
def item_box_item(item, ctx):
    return ctx.collaborators.orders.is_item_box_order(item.item_number)


@item_lifecycle.guard
def order_in_terminal_state(item, ctx):
    return item_box_item(item, ctx) and ctx.collaborators.orders.payment_declined(item.item_number)
