"""Application tests for vendor registry commands via domain.process()."""

import pytest
from grocery.order.state_machine import OrderStatus
from grocery.projections.vendor_directory import VendorDirectoryView
from grocery.shared.errors import ActorNotAuthorized, VendorNotOrderable
from grocery.vendor.approval import DecideVendor, SuspendVendor
from grocery.vendor.registration import SubmitVendor, UpdateVendorProfile
from grocery.vendor.vendor import Vendor, VendorStatus
from protean import current_domain


def _submit(name="Mama Nkechi's Pantry"):
    return current_domain.process(
        SubmitVendor(store_name=name, category="African", contact_email="nkechi@example.com", postcode="SE15 4QL"),
        asynchronous=False,
    )


class TestSubmitVendor:
    def test_submit_returns_id_and_persists_pending(self):
        vendor_id = _submit()
        vendor = current_domain.repository_for(Vendor).get(vendor_id)
        assert vendor.status == VendorStatus.PENDING.value

    def test_submission_appears_in_directory(self):
        vendor_id = _submit()
        view = current_domain.repository_for(VendorDirectoryView).get(vendor_id)
        assert view.status == VendorStatus.PENDING.value
        assert view.is_orderable is False


class TestDecideVendor:
    def test_admin_approves(self):
        vendor_id = _submit()
        current_domain.process(
            DecideVendor(vendor_id=vendor_id, decision="Approve", actor_role="Admin"),
            asynchronous=False,
        )
        assert current_domain.repository_for(Vendor).get(vendor_id).is_orderable
        assert current_domain.repository_for(VendorDirectoryView).get(vendor_id).is_orderable is True

    def test_vendor_cannot_approve_itself(self):
        vendor_id = _submit()
        with pytest.raises(ActorNotAuthorized):
            current_domain.process(
                DecideVendor(vendor_id=vendor_id, decision="Approve", actor_role="Vendor"),
                asynchronous=False,
            )
        assert current_domain.repository_for(Vendor).get(vendor_id).status == VendorStatus.PENDING.value


class TestUpdateVendorProfile:
    def test_vendor_edits_own_profile(self):
        vendor_id = _submit()
        current_domain.process(
            UpdateVendorProfile(vendor_id=vendor_id, actor_role="Vendor", actor_id=vendor_id, store_name="Nkechi's"),
            asynchronous=False,
        )
        assert current_domain.repository_for(Vendor).get(vendor_id).store_name == "Nkechi's"
        assert current_domain.repository_for(VendorDirectoryView).get(vendor_id).store_name == "Nkechi's"

    def test_other_vendor_cannot_edit(self):
        vendor_id = _submit()
        other_id = _submit("Other Shop")
        with pytest.raises(ActorNotAuthorized):
            current_domain.process(
                UpdateVendorProfile(vendor_id=vendor_id, actor_role="Vendor", actor_id=other_id, store_name="Hijacked"),
                asynchronous=False,
            )


class TestSuspendVendor:
    def test_suspension_blocks_new_orders_but_not_in_flight_ones(self, marketplace, store, three_item_order):
        marketplace.walk_to(three_item_order, OrderStatus.PICKING)

        current_domain.process(
            SuspendVendor(vendor_id=store.vendor_id, reason="Hygiene complaint", actor_role="Admin"),
            asynchronous=False,
        )

        with pytest.raises(VendorNotOrderable):
            marketplace.place(store.vendor_id, [(store.products["yam"], 1)])

        order = marketplace.walk_to(three_item_order, OrderStatus.DELIVERED)
        assert order.status == OrderStatus.DELIVERED.value

    def test_only_back_office_suspends(self, store):
        with pytest.raises(ActorNotAuthorized):
            current_domain.process(
                SuspendVendor(vendor_id=store.vendor_id, reason="Competitor", actor_role="Customer"),
                asynchronous=False,
            )
