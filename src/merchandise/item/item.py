"""Item entity and its append-only state history.

An item is one physical garment moving through intake, listing, sale and
returns. ``state`` is owned by the lifecycle engine; nothing else writes it.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from sqlalchemy import Boolean, DateTime, Float, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column, validates

from merchandise.utils.db import Base


class ItemState(Enum):
    DRAFTED = "drafted"
    STOCKROOM = "stockroom"
    LISTED = "listed"
    READY_TO_LIST = "ready_to_list"
    RESERVED = "reserved"
    REQUESTED_BY_CUSTOMER = "requested_by_customer"  # item box orders
    PURCHASED = "purchased"
    FLAGGED_FOR_RELISTING = "flagged_for_relisting"
    RELISTED = "relisted"
    PACKED = "packed"
    HELD_BY_CUSTOMER = "held_by_customer"  # item box orders
    NOT_PAID = "not_paid"
    NOT_PACKED = "not_packed"
    PACKED_NO_COSTS = "packed_no_costs"  # written off, then charged successfully
    RETURNED = "returned"
    RETURNED_NOT_PAID = "returned_not_paid"
    RETURNED_LATE = "returned_late"
    RETURNED_AND_DESTROYED = "returned_and_destroyed"
    HELD = "held"
    LOST = "lost"
    CONSIGNMENT_DELISTED = "consignment_delisted"
    RECLAIMABLE = "reclaimable"
    TO_BE_SCRAPPED = "to_be_scrapped"
    SCRAPPED = "scrapped"
    DESTROYED_PROCESSING = "destroyed_processing"
    FLAWED_AFTER_PROCESSED = "flawed_after_processed"  # deprecated, kept for old rows
    FLAWED_AFTER_PURCHASE = "flawed_after_purchase"
    UNDER_REVIEW = "under_review"
    PHOTO_SHOOT = "photo_shoot"
    TRANSFERRED = "transferred"
    TO_BE_TRANSFERRED = "to_be_transferred"
    LISTED_AT_STORE = "listed_at_store"
    FAILED_TO_LIST_AT_STORE = "failed_to_list_at_store"
    PARTNER_LISTED = "partner_listed"  # listed exclusively on another platform
    DROPSHIPPING_DELETED = "dropshipping_deleted"  # terminal


REITEMIZATION_LISTING_HOLD = "hold_for_reitemization"

# State -> attribute holding the instant the item first entered it
FIRST_ARRIVAL_STAMPS = {
    ItemState.STOCKROOM.value: "stockroom_at",
    ItemState.READY_TO_LIST.value: "ready_to_list_at",
    ItemState.LISTED.value: "listed_at",
    ItemState.PURCHASED.value: "purchased_at",
    ItemState.PACKED.value: "purchased_at",
}


def _utcnow():
    return datetime.now(UTC)


class Item(Base):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    state: Mapped[str] = mapped_column(String(40), nullable=False, default=ItemState.DRAFTED.value, index=True)

    # First-arrival stamps, set once
    stockroom_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ready_to_list_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    listed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    purchased_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Read by guards, written by hooks
    sku: Mapped[str | None] = mapped_column(String(64))
    warehouse_id: Mapped[str | None] = mapped_column(String(32))
    bag_number: Mapped[str | None] = mapped_column(String(64))
    dropshipping_warehouse_id: Mapped[str | None] = mapped_column(String(32))
    listing_hold: Mapped[str | None] = mapped_column(String(64))
    stockroom_reason: Mapped[str | None] = mapped_column(String(255))
    listable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    belongs_in_stockroom: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consignment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    upfront_wholesale: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_out: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    final_sale: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price_frozen: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    score: Mapped[float | None] = mapped_column(Float)

    # Cumulative seconds spent in states with exit tracking
    seconds_in_stockroom: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seconds_in_cart: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seconds_in_review: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    # Every write bumps it; writing over a version someone else moved past fails
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @validates("item_number")
    def _item_number_is_immutable(self, key, value):
        if self.item_number is not None and value != self.item_number:
            raise ValidationError({"item_number": ["cannot change once assigned"]})
        return value

    @property
    def identity(self) -> str:
        return self.item_number

    @property
    def first_arrival_timestamps(self) -> dict[str, datetime | None]:
        return {state: getattr(self, attribute) for state, attribute in FIRST_ARRIVAL_STAMPS.items()}

    def __repr__(self) -> str:
        return f"<Item(item_number='{self.item_number}', state='{self.state}')>"


class ItemHistory(Base):
    """One row per committed transition. Never updated or deleted."""

    __tablename__ = "item_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(40), nullable=False)
    source: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<ItemHistory(item_number='{self.item_number}', state='{self.state}')>"


@event.listens_for(ItemHistory, "before_update")
@event.listens_for(ItemHistory, "before_delete")
def _history_is_append_only(mapper, connection, target):
    raise ValidationError({"item_history": ["records are immutable"]})
