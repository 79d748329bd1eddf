"""Collaborator bundle handed to the lifecycle engine.

Guards and hooks reach external systems only through ``ctx.collaborators``;
``fake_collaborators()`` builds the in-memory set used in development and
tests.
"""

from dataclasses import dataclass

from merchandise.collaborators.fake_adapter import (
    FakeBags,
    FakeInventory,
    FakeItemFlags,
    FakeJobQueue,
    FakeNotificationSink,
    FakeOrders,
    FakePayouts,
    FakePricing,
)
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


@dataclass
class Collaborators:
    inventory: InventoryLookup
    flags: ItemFlags
    bags: BagLookup
    orders: OrderLookup
    pricing: PricingService
    payouts: PayoutService
    notifications: NotificationSink
    jobs: JobQueue


def fake_collaborators() -> Collaborators:
    """Return a fresh set of in-memory collaborators."""
    return Collaborators(
        inventory=FakeInventory(),
        flags=FakeItemFlags(),
        bags=FakeBags(),
        orders=FakeOrders(),
        pricing=FakePricing(),
        payouts=FakePayouts(),
        notifications=FakeNotificationSink(),
        jobs=FakeJobQueue(),
    )


__all__ = [
    "BagLookup",
    "Collaborators",
    "InventoryLookup",
    "ItemFlags",
    "JobQueue",
    "NotificationSink",
    "OrderLookup",
    "PayoutService",
    "PricingService",
    "fake_collaborators",
]
