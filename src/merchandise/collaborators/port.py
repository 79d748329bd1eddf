"""Collaborator ports (abstract interfaces).

Guards read through the lookup ports; hooks call the command ports. Each port
is narrow so tests can swap in the fakes from ``fake_adapter`` and production
can bind real clients without touching the lifecycle.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any


class InventoryLookup(ABC):
    """Warehouse inventory queries."""

    @abstractmethod
    def is_lost(self, item_number: str) -> bool:
        """True when the latest inventory status of the item is LOST."""
        ...

    @abstractmethod
    def open_slot_exists(self, sku: str, warehouse_id: str | None) -> bool:
        """True when another unit of this SKU may be listed from this warehouse."""
        ...


class ItemFlags(ABC):
    """Review, reclaim and exclusivity flags raised on items by operations."""

    @abstractmethod
    def is_flagged_for_review(self, item_number: str) -> bool: ...

    @abstractmethod
    def has_active_reclaim(self, item_number: str) -> bool: ...

    @abstractmethod
    def has_active_exclusive_listing(self, item_number: str) -> bool: ...

    @abstractmethod
    def resolve_review_flags(self, item_number: str) -> None: ...

    @abstractmethod
    def resolve_reclaim_flags(self, item_number: str) -> None: ...


class BagLookup(ABC):
    """Queries about the inbound bag an item was processed from."""

    @abstractmethod
    def is_processed(self, bag_number: str | None) -> bool: ...

    @abstractmethod
    def is_bought_out(self, bag_number: str | None) -> bool: ...

    @abstractmethod
    def is_wholesale_partner_bag(self, bag_number: str | None) -> bool: ...

    @abstractmethod
    def owned_by_super_user(self, bag_number: str | None) -> bool: ...


class OrderLookup(ABC):
    """Queries about the order an item was sold in."""

    @abstractmethod
    def is_item_box_order(self, item_number: str) -> bool: ...

    @abstractmethod
    def payment_declined(self, item_number: str) -> bool: ...


class PricingService(ABC):
    """Pricing commands. Failures propagate and roll the transition back."""

    @abstractmethod
    def recalculate_price_and_final_sale(self, item) -> bool:
        """Reprice the item; returns the final-sale flag."""
        ...

    @abstractmethod
    def calculate_score(self, item) -> float: ...

    @abstractmethod
    def freeze_price(self, item) -> None: ...

    @abstractmethod
    def set_price_for_stockroom(self, item) -> None: ...

    @abstractmethod
    def update_price_on_purchase(self, item) -> None: ...

    @abstractmethod
    def nullify_listed_price(self, item) -> None: ...


class PayoutService(ABC):
    """Consignment payout commands and queries."""

    @abstractmethod
    def record_payout(self, item) -> None: ...

    @abstractmethod
    def apply_consignment_payout(self, item) -> None: ...

    @abstractmethod
    def consignment_window_closed(self, item_number: str) -> bool: ...


class NotificationSink(ABC):
    """Downstream publication target with at-least-once delivery."""

    @abstractmethod
    def publish(self, topic: str, payload: dict[str, Any]) -> None: ...


class JobQueue(ABC):
    """Fire-and-forget background job enqueuer."""

    @abstractmethod
    def enqueue(self, job: str, payload: dict[str, Any], delay: timedelta | None = None) -> None: ...
