"""Messages published downstream when an item changes state.

Consumers outside this service (ops dashboards, search and marketing feeds)
read them, so they are registered as external events with fixed ``__type__``
strings and carry an explicit version.
"""

from protean.core.event import BaseEvent
from protean.fields import Boolean, DateTime, Identifier, String

from merchandise.domain import merchandise


class ItemStateChanged(BaseEvent):
    """An item committed a transition (or was registered in its initial state)."""

    __version__ = "v1"

    item_number = Identifier(required=True)
    state = String(required=True, max_length=40)
    previous_state = String(max_length=40)
    event = String(max_length=60)
    source = String(max_length=100)
    occurred_at = DateTime(required=True)

    def to_payload(self) -> dict:
        return {
            "event_kind": "ItemUpdate",
            "version": self.__version__,
            "item_number": self.item_number,
            "state": self.state,
            "data": {
                "item_number": self.item_number,
                "state": self.state,
                "previous_state": self.previous_state,
                "event": self.event,
                "source": self.source,
                "occurred_at": self.occurred_at.isoformat(),
            },
        }


class ItemFeedUpdated(BaseEvent):
    """Listing feed update consumed by search and marketing feeds."""

    __version__ = "v1"

    item_number = Identifier(required=True)
    state = String(required=True, max_length=40)
    event = String(max_length=60)
    source = String(max_length=100)
    final_sale = Boolean(default=False)
    occurred_at = DateTime(required=True)

    def to_payload(self) -> dict:
        return {
            "event_kind": "ItemFeedUpdate",
            "version": self.__version__,
            "item_number": self.item_number,
            "state": self.state,
            "data": {
                "item_number": self.item_number,
                "state": self.state,
                "event": self.event,
                "source": self.source,
                "final_sale": self.final_sale,
                "occurred_at": self.occurred_at.isoformat(),
            },
        }


merchandise.register_external_event(ItemStateChanged, "Merchandise.ItemStateChanged.v1")
merchandise.register_external_event(ItemFeedUpdated, "Merchandise.ItemFeedUpdated.v1")
