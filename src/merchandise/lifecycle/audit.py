"""Audit recorder: append-only history plus set-once first-arrival stamps."""

from collections.abc import Mapping
from datetime import datetime

import structlog
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)


class AuditRecorder:
    """Appends one history record per committed transition.

    ``stamped_states`` maps a state to the item attribute holding the instant
    the item first entered it. Stamps are only ever written while unset.
    """

    def __init__(self, history_cls, stamped_states: Mapping[str, str] | None = None):
        self.history_cls = history_cls
        self.stamped_states = dict(stamped_states or {})

    @staticmethod
    def stamp(item, attribute: str, now: datetime) -> bool:
        """Set ``attribute`` to ``now`` unless it already holds a value."""
        if getattr(item, attribute) is not None:
            return False
        setattr(item, attribute, now)
        return True

    def stamp_arrival(self, item, now: datetime) -> bool:
        attribute = self.stamped_states.get(item.state)
        if attribute is None:
            return False
        return self.stamp(item, attribute, now)

    def record(self, session: Session, item, source: str | None, now: datetime):
        """Stamp the destination state and append the history record.

        Runs inside the caller's transaction; nothing here commits.
        """
        stamped = self.stamp_arrival(item, now)

        entry = self.history_cls(
            item_number=item.identity,
            state=item.state,
            source=source,
            created_at=now,
        )
        session.add(entry)
        session.flush()

        logger.debug(
            "History recorded",
            item_number=item.identity,
            state=item.state,
            history_id=entry.id,
            stamped=stamped,
        )
        return entry
