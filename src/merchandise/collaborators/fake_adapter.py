"""In-memory collaborator fakes for development and testing.

Lookups answer from plain sets configured by the test; commands record their
calls. Every fake can be told to fail, which is how tests drive rollback and
post-commit isolation.
"""

from datetime import timedelta
from typing import Any

from merchandise.collaborators.port import (
    BagLookup,
    InventoryLookup,
    ItemFlags,
    JobQueue,
    NotificationSink,
    OrderLookup,
    PayoutService,
    PricingService,
)


class CollaboratorUnavailable(RuntimeError):
    """Raised by a fake configured to fail."""


class _Failable:
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Collaborator unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Collaborator unavailable") -> None:
        """Configure fake behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if not self.should_succeed:
            raise CollaboratorUnavailable(self.failure_reason)

    def called(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]


class FakeInventory(_Failable, InventoryLookup):
    def __init__(self) -> None:
        super().__init__()
        self.lost: set[str] = set()
        self.open_slots: set[tuple[str, str | None]] = set()

    def is_lost(self, item_number: str) -> bool:
        self._call("is_lost", item_number=item_number)
        return item_number in self.lost

    def open_slot_exists(self, sku: str, warehouse_id: str | None) -> bool:
        self._call("open_slot_exists", sku=sku, warehouse_id=warehouse_id)
        return (sku, warehouse_id) in self.open_slots


class FakeItemFlags(_Failable, ItemFlags):
    def __init__(self) -> None:
        super().__init__()
        self.review: set[str] = set()
        self.reclaim: set[str] = set()
        self.exclusive: set[str] = set()

    def is_flagged_for_review(self, item_number: str) -> bool:
        self._call("is_flagged_for_review", item_number=item_number)
        return item_number in self.review

    def has_active_reclaim(self, item_number: str) -> bool:
        self._call("has_active_reclaim", item_number=item_number)
        return item_number in self.reclaim

    def has_active_exclusive_listing(self, item_number: str) -> bool:
        self._call("has_active_exclusive_listing", item_number=item_number)
        return item_number in self.exclusive

    def resolve_review_flags(self, item_number: str) -> None:
        self._call("resolve_review_flags", item_number=item_number)
        self.review.discard(item_number)

    def resolve_reclaim_flags(self, item_number: str) -> None:
        self._call("resolve_reclaim_flags", item_number=item_number)
        self.reclaim.discard(item_number)


class FakeBags(_Failable, BagLookup):
    def __init__(self) -> None:
        super().__init__()
        self.processed: set[str] = set()
        self.bought_out: set[str] = set()
        self.wholesale_partner: set[str] = set()
        self.super_user: set[str] = set()

    def is_processed(self, bag_number: str | None) -> bool:
        self._call("is_processed", bag_number=bag_number)
        return bag_number in self.processed

    def is_bought_out(self, bag_number: str | None) -> bool:
        self._call("is_bought_out", bag_number=bag_number)
        return bag_number in self.bought_out

    def is_wholesale_partner_bag(self, bag_number: str | None) -> bool:
        self._call("is_wholesale_partner_bag", bag_number=bag_number)
        return bag_number in self.wholesale_partner

    def owned_by_super_user(self, bag_number: str | None) -> bool:
        self._call("owned_by_super_user", bag_number=bag_number)
        return bag_number in self.super_user


class FakeOrders(_Failable, OrderLookup):
    def __init__(self) -> None:
        super().__init__()
        self.item_box: set[str] = set()
        self.declined: set[str] = set()

    def is_item_box_order(self, item_number: str) -> bool:
        self._call("is_item_box_order", item_number=item_number)
        return item_number in self.item_box

    def payment_declined(self, item_number: str) -> bool:
        self._call("payment_declined", item_number=item_number)
        return item_number in self.declined


class FakePricing(_Failable, PricingService):
    def __init__(self) -> None:
        super().__init__()
        self.final_sale: set[str] = set()
        self.scores: dict[str, float] = {}

    def recalculate_price_and_final_sale(self, item) -> bool:
        self._call("recalculate_price_and_final_sale", item_number=item.item_number)
        return item.item_number in self.final_sale

    def calculate_score(self, item) -> float:
        self._call("calculate_score", item_number=item.item_number)
        return self.scores.get(item.item_number, 0.0)

    def freeze_price(self, item) -> None:
        self._call("freeze_price", item_number=item.item_number)

    def set_price_for_stockroom(self, item) -> None:
        self._call("set_price_for_stockroom", item_number=item.item_number)

    def update_price_on_purchase(self, item) -> None:
        self._call("update_price_on_purchase", item_number=item.item_number)

    def nullify_listed_price(self, item) -> None:
        self._call("nullify_listed_price", item_number=item.item_number)


class FakePayouts(_Failable, PayoutService):
    def __init__(self) -> None:
        super().__init__()
        self.closed_windows: set[str] = set()

    def record_payout(self, item) -> None:
        self._call("record_payout", item_number=item.item_number)

    def apply_consignment_payout(self, item) -> None:
        self._call("apply_consignment_payout", item_number=item.item_number)

    def consignment_window_closed(self, item_number: str) -> bool:
        self._call("consignment_window_closed", item_number=item_number)
        return item_number in self.closed_windows


class FakeNotificationSink(_Failable, NotificationSink):
    """Records published messages for test assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.published: list[dict[str, Any]] = []

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        self._call("publish", topic=topic)
        self.published.append({"topic": topic, "payload": payload})

    def on_topic(self, topic: str) -> list[dict[str, Any]]:
        return [message["payload"] for message in self.published if message["topic"] == topic]

    def reset(self) -> None:
        self.published.clear()
        self.calls.clear()
        self.should_succeed = True


class FakeJobQueue(_Failable, JobQueue):
    def __init__(self) -> None:
        super().__init__()
        self.enqueued: list[dict[str, Any]] = []

    def enqueue(self, job: str, payload: dict[str, Any], delay: timedelta | None = None) -> None:
        self._call("enqueue", job=job)
        self.enqueued.append({"job": job, "payload": payload, "delay": delay})

    def jobs(self, job: str) -> list[dict[str, Any]]:
        return [entry for entry in self.enqueued if entry["job"] == job]
