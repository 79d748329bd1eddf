"""Item repository: loading, locking and history queries over one session."""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from merchandise.exceptions import ItemNotFound
from merchandise.item.item import Item, ItemHistory


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class ItemRepository:
    def __init__(self, session: Session):
        self.session = session

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def get(self, item_number: str) -> Item:
        item = self.session.scalars(select(Item).where(Item.item_number == item_number)).one_or_none()
        if item is None:
            raise ItemNotFound(item_number)
        return item

    def get_for_update(self, item_number: str) -> Item:
        """Load the item holding its row lock until the transaction ends.

        SQLite ignores ``FOR UPDATE``; there the version column on ``Item``
        rejects the write if another connection committed in between.

        ``populate_existing`` refreshes an instance already in the session so
        the caller always sees the committed row.
        """
        statement = (
            select(Item)
            .where(Item.item_number == item_number)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = self.session.scalars(statement).one_or_none()
        if item is None:
            raise ItemNotFound(item_number)
        return item

    def add(self, item: Item) -> Item:
        self.session.add(item)
        self.session.flush()
        return item

    def exists(self, item_number: str) -> bool:
        statement = select(func.count()).select_from(Item).where(Item.item_number == item_number)
        return self.session.scalar(statement) > 0

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    def history(self, item_number: str) -> list[ItemHistory]:
        """The full timeline, oldest first."""
        statement = (
            select(ItemHistory)
            .where(ItemHistory.item_number == item_number)
            .order_by(ItemHistory.created_at, ItemHistory.id)
        )
        return list(self.session.scalars(statement))

    def first_entered_at(self, item_number: str, state: str) -> datetime | None:
        statement = select(func.min(ItemHistory.created_at)).where(
            ItemHistory.item_number == item_number,
            ItemHistory.state == state,
        )
        return as_utc(self.session.scalar(statement))

    def last_entered_at(self, item_number: str, state: str) -> datetime | None:
        statement = select(func.max(ItemHistory.created_at)).where(
            ItemHistory.item_number == item_number,
            ItemHistory.state == state,
        )
        return as_utc(self.session.scalar(statement))

    def stay_started_at(self, item_number: str, state: str) -> datetime | None:
        """When the item's latest uninterrupted run of ``state`` records began."""
        started = None
        for record in reversed(self.history(item_number)):
            if record.state != state:
                break
            started = as_utc(record.created_at)
        return started

    def time_spent_in(self, item_number: str, state: str, now: datetime | None = None) -> float:
        """Cumulative seconds spent in ``state``, reconstructed from history.

        An open stay (the item is still in ``state``) counts up to ``now``.
        """
        now = as_utc(now) or datetime.now(UTC)
        total = 0.0
        entered = None
        for record in self.history(item_number):
            created = as_utc(record.created_at)
            if entered is not None and record.state != state:
                total += (created - entered).total_seconds()
                entered = None
            elif entered is None and record.state == state:
                entered = created
        if entered is not None:
            total += (now - entered).total_seconds()
        return total
