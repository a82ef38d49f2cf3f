import json
from types import SimpleNamespace

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from grocery.catalog.management import AddProduct
from grocery.dispatch.assignment import AssignPicker, AssignRider
from grocery.dispatch.strategies import reset_strategy
from grocery.geolocation import reset_locator
from grocery.notifier import get_notifier, reset_notifier
from grocery.order.delivery import ConfirmDelivery, ConfirmPickup
from grocery.order.order import ItemStatus, Order
from grocery.order.picking import CompletePicking, MarkItemPicked, StartPicking
from grocery.order.placement import PlaceOrder
from grocery.order.state_machine import OrderStatus
from grocery.order.vendor_decision import AcceptOrder
from grocery.payment import get_payment_gateway, reset_payment_gateway
from grocery.vendor.approval import DecideVendor
from grocery.vendor.registration import SubmitVendor
from grocery.workforce.registration import GoOnline, RegisterWorker


@pytest.fixture(scope="session")
def grocery_bed():
    from grocery.domain import grocery

    bed = DomainFixture(grocery)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(grocery_bed):
    with grocery_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _reset_collaborators():
    """Every test starts with fresh fake collaborators and the default strategy."""
    reset_payment_gateway()
    reset_notifier()
    reset_locator()
    reset_strategy()
    yield
    reset_payment_gateway()
    reset_notifier()
    reset_locator()
    reset_strategy()


@pytest.fixture()
def payment_gateway():
    return get_payment_gateway()


@pytest.fixture()
def notifier():
    return get_notifier()


def _process(command):
    return current_domain.process(command, asynchronous=False)


# Order in which walk_to() advances an order along the happy path
_HAPPY_PATH = [
    OrderStatus.PLACED,
    OrderStatus.VENDOR_ACCEPTED,
    OrderStatus.PICKER_ASSIGNED,
    OrderStatus.PICKING,
    OrderStatus.PICKED_COMPLETE,
    OrderStatus.RIDER_ASSIGNED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
]


class Marketplace:
    """Drives the grocery domain through its commands, as the API would."""

    def vendor(self, store_name="Mama Nkechi's Pantry", approved=True, postcode="SE15 4QL") -> str:
        vendor_id = _process(SubmitVendor(store_name=store_name, category="African", postcode=postcode))
        if approved:
            _process(DecideVendor(vendor_id=vendor_id, decision="Approve", actor_role="Admin"))
        return vendor_id

    def product(self, vendor_id, name="Plantain", unit="bunch", unit_price=2.5) -> str:
        return _process(AddProduct(vendor_id=vendor_id, name=name, unit=unit, unit_price=unit_price))

    def picker(self, vendor_id, name="Ade", online=True, **kwargs) -> str:
        worker_id = _process(RegisterWorker(role="Picker", name=name, store_ids=json.dumps([vendor_id]), **kwargs))
        if online:
            _process(GoOnline(worker_id=worker_id, store_id=vendor_id))
        return worker_id

    def rider(self, name="Kofi", postcodes=("SE15",), online=True, **kwargs) -> str:
        worker_id = _process(
            RegisterWorker(role="Rider", name=name, service_postcodes=json.dumps(list(postcodes)), **kwargs)
        )
        if online:
            _process(GoOnline(worker_id=worker_id))
        return worker_id

    def place(self, vendor_id, lines, customer_id="cust-001", postcode="SE15 5AB", allow_partial=False) -> str:
        """`lines` is a list of (product_id, quantity) pairs."""
        return _process(
            PlaceOrder(
                customer_id=customer_id,
                vendor_id=vendor_id,
                lines=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in lines]),
                delivery_postcode=postcode,
                allow_partial=allow_partial,
            )
        )

    def order(self, order_id) -> Order:
        return current_domain.repository_for(Order).get(order_id)

    def pick_all(self, order_id) -> None:
        order = self.order(order_id)
        for item in order.items:
            if item.status == ItemStatus.UNPICKED.value:
                _process(
                    MarkItemPicked(
                        order_id=order_id,
                        line_item_id=str(item.id),
                        actor_role="Picker",
                        actor_id=str(order.picker_id),
                    )
                )

    def advance(self, order_id, target: OrderStatus):
        """Take the single happy-path step that ends in `target`."""
        order = self.order(order_id)
        if target == OrderStatus.VENDOR_ACCEPTED:
            return _process(AcceptOrder(order_id=order_id, actor_role="Vendor", actor_id=str(order.vendor_id)))
        if target == OrderStatus.PICKER_ASSIGNED:
            return _process(AssignPicker(order_id=order_id))
        if target == OrderStatus.PICKING:
            return _process(StartPicking(order_id=order_id, actor_role="Picker", actor_id=str(order.picker_id)))
        if target == OrderStatus.PICKED_COMPLETE:
            self.pick_all(order_id)
            return _process(CompletePicking(order_id=order_id, actor_role="Picker", actor_id=str(order.picker_id)))
        if target == OrderStatus.RIDER_ASSIGNED:
            return _process(AssignRider(order_id=order_id))
        if target == OrderStatus.IN_TRANSIT:
            return _process(ConfirmPickup(order_id=order_id, actor_role="Rider", actor_id=str(order.rider_id)))
        if target == OrderStatus.DELIVERED:
            return _process(ConfirmDelivery(order_id=order_id, actor_role="Rider", actor_id=str(order.rider_id)))
        raise ValueError(f"No happy-path step ends in {target.value}")

    def walk_to(self, order_id, target: OrderStatus) -> Order:
        current = OrderStatus(self.order(order_id).status)
        start = _HAPPY_PATH.index(current)
        for status in _HAPPY_PATH[start + 1 : _HAPPY_PATH.index(target) + 1]:
            self.advance(order_id, status)
        return self.order(order_id)


@pytest.fixture()
def marketplace():
    return Marketplace()


@pytest.fixture()
def store(marketplace):
    """An approved vendor with three products, one online picker and one online rider."""
    vendor_id = marketplace.vendor()
    products = {
        "plantain": marketplace.product(vendor_id, "Plantain", "bunch", 2.50),
        "yam": marketplace.product(vendor_id, "Puna Yam", "kg", 4.00),
        "palm_oil": marketplace.product(vendor_id, "Red Palm Oil", "bottle", 6.00),
    }
    return SimpleNamespace(
        vendor_id=vendor_id,
        products=products,
        picker_id=marketplace.picker(vendor_id),
        rider_id=marketplace.rider(),
    )


@pytest.fixture()
def three_item_order(marketplace, store):
    """A placed order for plantain x2, yam x1 and palm oil x1 (total 15.00)."""
    return marketplace.place(
        store.vendor_id,
        [
            (store.products["plantain"], 2),
            (store.products["yam"], 1),
            (store.products["palm_oil"], 1),
        ],
    )
