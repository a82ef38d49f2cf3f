"""Application tests for order placement: vendor gate, catalog snapshot and payment."""

import pytest
from grocery.catalog.management import ChangeProductPrice, DeactivateProduct
from grocery.catalog.snapshot import take_snapshot
from grocery.order.order import Order
from grocery.order.state_machine import OrderStatus
from grocery.projections.order_board import OrderBoardView
from grocery.shared.errors import PaymentDeclined, ProductUnavailable, VendorNotOrderable
from protean import current_domain


def _order_count():
    return len(current_domain.repository_for(Order)._dao.query.all().items)


class TestCatalogSnapshot:
    def test_snapshot_copies_catalog_data(self, store):
        snapshot = take_snapshot(store.vendor_id, [{"product_id": store.products["yam"], "quantity": 2}])
        assert snapshot.rejected == ()
        line = snapshot.lines[0].as_dict()
        assert line == {
            "product_id": store.products["yam"],
            "product_name": "Puna Yam",
            "unit": "kg",
            "quantity": 2,
            "unit_price": 4.0,
        }

    def test_snapshot_rejects_foreign_missing_and_inactive_products(self, marketplace, store):
        other_vendor = marketplace.vendor("Other Shop")
        foreign = marketplace.product(other_vendor, "Injera", "pack", 3.0)
        current_domain.process(DeactivateProduct(product_id=store.products["palm_oil"]), asynchronous=False)

        snapshot = take_snapshot(
            store.vendor_id,
            [
                {"product_id": foreign, "quantity": 1},
                {"product_id": "no-such-product", "quantity": 1},
                {"product_id": store.products["palm_oil"], "quantity": 1},
                {"product_id": store.products["yam"], "quantity": 1},
            ],
        )
        assert len(snapshot.lines) == 1
        assert set(snapshot.rejected_product_ids) == {foreign, "no-such-product", store.products["palm_oil"]}


class TestPlaceOrder:
    def test_order_is_placed_with_snapshot_prices(self, marketplace, store, three_item_order):
        order = marketplace.order(three_item_order)
        assert order.status == OrderStatus.PLACED.value
        assert order.total == 15.0
        assert order.payment_ref.startswith("fake_auth_")

    def test_later_price_change_does_not_touch_the_order(self, marketplace, store, three_item_order):
        current_domain.process(
            ChangeProductPrice(product_id=store.products["yam"], unit_price=9.99),
            asynchronous=False,
        )
        order = marketplace.order(three_item_order)
        yam = next(i for i in order.items if str(i.product_id) == store.products["yam"])
        assert yam.unit_price == 4.0
        assert order.total == 15.0

    def test_order_appears_on_board(self, store, three_item_order):
        view = current_domain.repository_for(OrderBoardView).get(three_item_order)
        assert view.status == OrderStatus.PLACED.value
        assert view.item_count == 3

    def test_unapproved_vendor_is_refused(self, marketplace):
        pending = marketplace.vendor("New Shop", approved=False)
        product = marketplace.product(pending, "Egusi", "bag", 5.0)
        with pytest.raises(VendorNotOrderable):
            marketplace.place(pending, [(product, 1)])
        assert _order_count() == 0

    def test_unknown_vendor_is_refused(self, marketplace):
        with pytest.raises(VendorNotOrderable):
            marketplace.place("vendor-404", [("prod-1", 1)])

    def test_unavailable_product_is_refused(self, marketplace, store):
        with pytest.raises(ProductUnavailable) as exc:
            marketplace.place(store.vendor_id, [(store.products["yam"], 1), ("gone", 1)])
        assert exc.value.product_ids == ["gone"]
        assert _order_count() == 0

    def test_partial_order_drops_unavailable_lines(self, marketplace, store):
        order_id = marketplace.place(
            store.vendor_id,
            [(store.products["yam"], 1), ("gone", 1)],
            allow_partial=True,
        )
        order = marketplace.order(order_id)
        assert len(order.items) == 1
        assert order.total == 4.0

    def test_partial_order_with_nothing_available_is_refused(self, marketplace, store):
        with pytest.raises(ProductUnavailable):
            marketplace.place(store.vendor_id, [("gone", 1)], allow_partial=True)

    def test_declined_payment_creates_no_order(self, marketplace, store, payment_gateway):
        payment_gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        with pytest.raises(PaymentDeclined):
            marketplace.place(store.vendor_id, [(store.products["yam"], 1)])
        assert _order_count() == 0

    def test_payment_is_asked_only_after_catalog_checks(self, marketplace, store, payment_gateway):
        with pytest.raises(ProductUnavailable):
            marketplace.place(store.vendor_id, [("gone", 1)])
        assert payment_gateway.calls == []

    def test_payment_draft_carries_the_snapshot_total(self, marketplace, store, payment_gateway):
        marketplace.place(store.vendor_id, [(store.products["plantain"], 2)])
        draft = payment_gateway.calls[-1]["order_draft"]
        assert draft["total"] == 5.0
        assert draft["lines"][0]["product_name"] == "Plantain"
