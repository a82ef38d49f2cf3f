"""Worker aggregate (CQRS) — pickers and riders the dispatch coordinator assigns.

A worker holds a bounded set of active orders. Reserving a slot and assigning
the order are written in the same unit of work, and Protean's version check on
both aggregates stops two orders from booking the same last slot.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from grocery.domain import grocery
from grocery.shared.errors import WorkerUnavailable
from grocery.workforce.events import (
    WorkerRegistered,
    WorkerReleased,
    WorkerReserved,
    WorkerWentOffline,
    WorkerWentOnline,
)


class WorkerRole(Enum):
    PICKER = "Picker"
    RIDER = "Rider"


# Pickers batch several orders in one store visit; riders carry one at a time
DEFAULT_CAPACITY = {
    WorkerRole.PICKER: 3,
    WorkerRole.RIDER: 1,
}


def outward_code(postcode: str | None) -> str:
    """The area part of a UK-style postcode ("SW1A 1AA" → "SW1A")."""
    return (postcode or "").strip().split(" ")[0].upper()


@grocery.aggregate
class Worker:
    role = String(required=True, max_length=10, choices=WorkerRole)
    name = String(required=True, max_length=150)
    store_ids = Text()  # JSON list of affiliated vendor ids
    current_store_id = String(max_length=50)
    service_postcodes = Text()  # JSON list of postcode prefixes
    is_online = Boolean(default=False)
    max_active_orders = Integer(min_value=1)
    active_order_ids = Text()  # JSON list
    last_assigned_at = DateTime()
    rating = Float(default=5.0, min_value=0.0, max_value=5.0)
    completed_orders = Integer(default=0)
    registered_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        role: str,
        name: str,
        store_ids: list[str] | None = None,
        service_postcodes: list[str] | None = None,
        max_active_orders: int | None = None,
        rating: float | None = None,
    ):
        worker_role = WorkerRole(role)
        if worker_role == WorkerRole.PICKER and not store_ids:
            raise ValidationError({"store_ids": ["A picker must be affiliated with at least one store"]})

        now = datetime.now(UTC)
        stores = [str(s) for s in (store_ids or [])]
        areas = [outward_code(p) for p in (service_postcodes or []) if p]
        worker = cls(
            role=worker_role.value,
            name=name,
            store_ids=json.dumps(stores),
            service_postcodes=json.dumps(areas),
            is_online=False,
            max_active_orders=max_active_orders or DEFAULT_CAPACITY[worker_role],
            active_order_ids=json.dumps([]),
            rating=5.0 if rating is None else rating,
            completed_orders=0,
            registered_at=now,
            updated_at=now,
        )
        worker.raise_(
            WorkerRegistered(
                worker_id=str(worker.id),
                role=worker.role,
                name=name,
                store_ids=worker.store_ids,
                service_postcodes=worker.service_postcodes,
                registered_at=now,
            )
        )
        return worker

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def stores(self) -> list[str]:
        return json.loads(self.store_ids) if self.store_ids else []

    @property
    def areas(self) -> list[str]:
        return json.loads(self.service_postcodes) if self.service_postcodes else []

    @property
    def active_orders(self) -> list[str]:
        return json.loads(self.active_order_ids) if self.active_order_ids else []

    @property
    def has_capacity(self) -> bool:
        return len(self.active_orders) < (self.max_active_orders or 1)

    @property
    def is_available(self) -> bool:
        return bool(self.is_online) and self.has_capacity

    def works_at(self, vendor_id: str) -> bool:
        """Affiliated with the store and checked in there."""
        return str(vendor_id) in self.stores and str(self.current_store_id) == str(vendor_id)

    def covers(self, postcode: str | None) -> bool:
        """A rider with no service areas covers every postcode."""
        if not self.areas:
            return True
        prefix = outward_code(postcode)
        return bool(prefix) and any(area.startswith(prefix) for area in self.areas)

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def go_online(self, store_id: str | None = None) -> None:
        if WorkerRole(self.role) == WorkerRole.PICKER:
            if store_id is None and len(self.stores) == 1:
                store_id = self.stores[0]
            if store_id is None or str(store_id) not in self.stores:
                raise ValidationError({"store_id": ["Picker must check in at one of their affiliated stores"]})

        now = datetime.now(UTC)
        self.is_online = True
        self.current_store_id = str(store_id) if store_id else None
        self.updated_at = now
        self.raise_(
            WorkerWentOnline(
                worker_id=str(self.id),
                role=self.role,
                store_id=self.current_store_id,
                online_at=now,
            )
        )

    def go_offline(self) -> None:
        if not self.is_online:
            return
        now = datetime.now(UTC)
        self.is_online = False
        self.current_store_id = None
        self.updated_at = now
        self.raise_(
            WorkerWentOffline(
                worker_id=str(self.id),
                role=self.role,
                active_order_count=len(self.active_orders),
                offline_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Assignment slots
    # -------------------------------------------------------------------
    def reserve(self, order_id: str) -> None:
        """Take one slot for `order_id`. Fails if offline or full."""
        active = self.active_orders
        if str(order_id) in active:
            return
        if not self.is_online:
            raise WorkerUnavailable({"worker_id": [f"{self.role} {self.id} is offline"]})
        if not self.has_capacity:
            raise WorkerUnavailable({"worker_id": [f"{self.role} {self.id} has no free capacity"]})

        now = datetime.now(UTC)
        active.append(str(order_id))
        self.active_order_ids = json.dumps(active)
        self.last_assigned_at = now
        self.updated_at = now
        self.raise_(
            WorkerReserved(
                worker_id=str(self.id),
                order_id=str(order_id),
                active_order_count=len(active),
                reserved_at=now,
            )
        )

    def release(self, order_id: str, completed: bool = False) -> bool:
        """Free the slot held for `order_id`. Returns False if it was not held."""
        active = self.active_orders
        if str(order_id) not in active:
            return False

        now = datetime.now(UTC)
        active.remove(str(order_id))
        self.active_order_ids = json.dumps(active)
        if completed:
            self.completed_orders = (self.completed_orders or 0) + 1
        self.updated_at = now
        self.raise_(
            WorkerReleased(
                worker_id=str(self.id),
                order_id=str(order_id),
                completed=completed,
                active_order_count=len(active),
                released_at=now,
            )
        )
        return True
