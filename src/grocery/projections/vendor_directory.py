"""Vendor directory — the one read model of which stores can take orders."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.vendor.events import (
    VendorApproved,
    VendorProfileUpdated,
    VendorRejected,
    VendorSubmitted,
    VendorSuspended,
)
from grocery.vendor.vendor import Vendor, VendorStatus


@grocery.projection
class VendorDirectoryView:
    vendor_id = Identifier(identifier=True, required=True)
    store_name = String(required=True)
    category = String()
    postcode = String()
    status = String(required=True)
    is_orderable = Boolean(default=False)
    updated_at = DateTime()


@grocery.projector(projector_for=VendorDirectoryView, aggregates=[Vendor])
class VendorDirectoryProjector:
    @on(VendorSubmitted)
    def on_vendor_submitted(self, event):
        current_domain.repository_for(VendorDirectoryView).add(
            VendorDirectoryView(
                vendor_id=event.vendor_id,
                store_name=event.store_name,
                category=event.category,
                postcode=event.postcode,
                status=VendorStatus.PENDING.value,
                is_orderable=False,
                updated_at=event.submitted_at,
            )
        )

    @on(VendorApproved)
    def on_vendor_approved(self, event):
        repo = current_domain.repository_for(VendorDirectoryView)
        view = repo.get(event.vendor_id)
        view.status = VendorStatus.APPROVED.value
        view.is_orderable = True
        view.updated_at = event.decided_at
        repo.add(view)

    @on(VendorRejected)
    def on_vendor_rejected(self, event):
        repo = current_domain.repository_for(VendorDirectoryView)
        view = repo.get(event.vendor_id)
        view.status = VendorStatus.REJECTED.value
        view.is_orderable = False
        view.updated_at = event.decided_at
        repo.add(view)

    @on(VendorSuspended)
    def on_vendor_suspended(self, event):
        repo = current_domain.repository_for(VendorDirectoryView)
        view = repo.get(event.vendor_id)
        view.status = VendorStatus.SUSPENDED.value
        view.is_orderable = False
        view.updated_at = event.suspended_at
        repo.add(view)

    @on(VendorProfileUpdated)
    def on_vendor_profile_updated(self, event):
        repo = current_domain.repository_for(VendorDirectoryView)
        view = repo.get(event.vendor_id)
        view.store_name = event.store_name
        view.category = event.category
        view.postcode = event.postcode
        view.updated_at = event.updated_at
        repo.add(view)
