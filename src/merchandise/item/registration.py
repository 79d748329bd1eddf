"""Item registration: bringing a new item under lifecycle control."""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from merchandise.config import get_settings
from merchandise.domain import merchandise
from merchandise.exceptions import DuplicateItem
from merchandise.item.events import ItemStateChanged
from merchandise.item.item import FIRST_ARRIVAL_STAMPS, Item, ItemHistory, ItemState
from merchandise.item.repository import ItemRepository
from merchandise.lifecycle.audit import AuditRecorder

logger = structlog.get_logger(__name__)

# Written by registration and the lifecycle engine only
MANAGED_FIELDS = frozenset({"id", "state", "created_at", "updated_at", "version_id"})


def register_item(
    session_factory: sessionmaker[Session],
    item_number: str,
    *,
    collaborators,
    clock: Callable[[], datetime] | None = None,
    source: str | None = None,
    **fields,
) -> Item:
    """Create an item in its initial state with its first history record.

    ``fields`` are passed to the ``Item`` model (``sku``, ``listable`` ...).
    The creation message is published after commit; a publishing failure is
    logged and leaves the item registered.
    """
    managed = sorted(MANAGED_FIELDS.intersection(fields))
    if managed:
        raise ValidationError({name: ["is managed by the item lifecycle"] for name in managed})

    now = (clock or (lambda: datetime.now(UTC)))()
    audit = AuditRecorder(ItemHistory, FIRST_ARRIVAL_STAMPS)

    try:
        with session_factory() as session, session.begin():
            repository = ItemRepository(session)
            if repository.exists(item_number):
                raise DuplicateItem(item_number)

            item = Item(item_number=item_number, state=ItemState.DRAFTED.value, created_at=now, **fields)
            repository.add(item)
            audit.record(session, item, source, now)
    except IntegrityError as exc:
        # Another writer may have registered the same number after the check
        with session_factory() as session:
            if not ItemRepository(session).exists(item_number):
                raise
        raise DuplicateItem(item_number) from exc

    logger.info("Item registered", item_number=item_number, state=item.state, source=source)

    try:
        with merchandise.domain_context():
            message = ItemStateChanged(
                item_number=item_number,
                state=item.state,
                previous_state=None,
                event=None,
                source=source,
                occurred_at=now,
            )
        collaborators.notifications.publish(get_settings().publish_topic, message.to_payload())
    except Exception:
        logger.exception("Failed to publish item registration", item_number=item_number)

    return item
