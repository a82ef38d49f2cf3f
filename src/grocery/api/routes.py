"""FastAPI routes for the grocery fulfillment core.

One endpoint per command. The identity collaborator authenticates callers
upstream and forwards the actor as X-Actor-Role / X-Actor-Id headers; every
command carries them. Order commands go through process_with_retry so a
version conflict with a concurrent writer is retried instead of surfacing.
"""

import json
from dataclasses import dataclass
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException
from protean.utils.globals import current_domain

from grocery.api.schemas import (
    AddProductRequest,
    BoardEntry,
    CancellationResponse,
    CancelOrderRequest,
    ChangeProductPriceRequest,
    ConfigurePaymentRequest,
    DecideVendorRequest,
    DeclineAssignmentRequest,
    ExpiryResponse,
    GoOnlineRequest,
    IssueReportedResponse,
    ItemPickedResponse,
    NoteRequest,
    OrderIdResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ReassignWorkerRequest,
    RegisterWorkerRequest,
    RejectOrderRequest,
    ReportIssueRequest,
    ResolveSubstitutionRequest,
    StatusResponse,
    SubmitVendorRequest,
    SubstitutionResponse,
    SuspendVendorRequest,
    SweepResponse,
    TransitionResponse,
    UpdateVendorProfileRequest,
    VendorDirectoryEntry,
    VendorIdResponse,
    WorkerIdResponse,
)
from grocery.catalog.management import AddProduct, ChangeProductPrice, DeactivateProduct
from grocery.dispatch.assignment import AssignPicker, AssignRider, DeclineAssignment, ReassignWorker
from grocery.dispatch.sweep import RunDispatchSweep
from grocery.order.cancellation import CancelOrder
from grocery.order.delivery import ConfirmDelivery, ConfirmPickup
from grocery.order.labels import labels_for
from grocery.order.order import Order
from grocery.order.picking import CompletePicking, MarkItemPicked, StartPicking
from grocery.order.placement import PlaceOrder
from grocery.order.vendor_decision import AcceptOrder, RejectOrder
from grocery.payment import get_payment_gateway
from grocery.payment.fake_adapter import FakePaymentGateway
from grocery.projections.order_board import OrderBoardView
from grocery.projections.vendor_directory import VendorDirectoryView
from grocery.shared.actors import ActorRole, parse_role
from grocery.shared.errors import LATE_CANCELLATION_OVERRIDE
from grocery.substitution.expiry import ExpireSubstitutions
from grocery.substitution.reporting import ReportItemIssue
from grocery.substitution.resolution import ResolveSubstitution
from grocery.utils.retry import process_with_retry
from grocery.vendor.approval import DecideVendor, SuspendVendor
from grocery.vendor.registration import SubmitVendor, UpdateVendorProfile
from grocery.workforce.registration import GoOffline, GoOnline, RegisterWorker


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    actor_id: str | None = None


def current_actor(
    x_actor_role: str = Header(...),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    """Resolve the calling actor from the identity headers."""
    try:
        role = parse_role(x_actor_role)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return Actor(role=role, actor_id=x_actor_id)


# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendors", tags=["vendors"])


@vendor_router.post("", status_code=201, response_model=VendorIdResponse)
async def submit_vendor(body: SubmitVendorRequest) -> VendorIdResponse:
    command = SubmitVendor(
        store_name=body.store_name,
        category=body.category,
        contact_email=body.contact_email,
        postcode=body.postcode,
    )
    result = current_domain.process(command, asynchronous=False)
    return VendorIdResponse(vendor_id=result)


@vendor_router.get("", response_model=list[VendorDirectoryEntry])
async def list_vendors(orderable: bool | None = None) -> list[VendorDirectoryEntry]:
    """The vendor directory, optionally only vendors that can take orders."""
    query = current_domain.repository_for(VendorDirectoryView)._dao.query
    if orderable is not None:
        query = query.filter(is_orderable=orderable)
    return [
        VendorDirectoryEntry(
            vendor_id=str(view.vendor_id),
            store_name=view.store_name,
            category=view.category,
            postcode=view.postcode,
            status=view.status,
            is_orderable=bool(view.is_orderable),
        )
        for view in query.all().items
    ]


@vendor_router.put("/{vendor_id}/profile", response_model=StatusResponse)
async def update_vendor_profile(
    vendor_id: str,
    body: UpdateVendorProfileRequest,
    actor: Actor = Depends(current_actor),
) -> StatusResponse:
    command = UpdateVendorProfile(
        vendor_id=vendor_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        store_name=body.store_name,
        category=body.category,
        postcode=body.postcode,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="profile_updated")


@vendor_router.put("/{vendor_id}/decision", response_model=StatusResponse)
async def decide_vendor(
    vendor_id: str,
    body: DecideVendorRequest,
    actor: Actor = Depends(current_actor),
) -> StatusResponse:
    command = DecideVendor(
        vendor_id=vendor_id,
        decision=body.decision,
        note=body.note,
        actor_role=actor.role.value,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="approved" if body.decision == "Approve" else "rejected")


@vendor_router.put("/{vendor_id}/suspend", response_model=StatusResponse)
async def suspend_vendor(
    vendor_id: str,
    body: SuspendVendorRequest,
    actor: Actor = Depends(current_actor),
) -> StatusResponse:
    command = SuspendVendor(vendor_id=vendor_id, reason=body.reason, actor_role=actor.role.value)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="suspended")


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def add_product(body: AddProductRequest) -> ProductIdResponse:
    command = AddProduct(
        vendor_id=body.vendor_id,
        name=body.name,
        unit=body.unit,
        unit_price=body.unit_price,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def change_product_price(product_id: str, body: ChangeProductPriceRequest) -> StatusResponse:
    current_domain.process(ChangeProductPrice(product_id=product_id, unit_price=body.unit_price), asynchronous=False)
    return StatusResponse(status="price_changed")


@product_router.put("/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(product_id: str) -> StatusResponse:
    current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Worker Router
# ---------------------------------------------------------------------------
worker_router = APIRouter(prefix="/workers", tags=["workers"])


@worker_router.post("", status_code=201, response_model=WorkerIdResponse)
async def register_worker(body: RegisterWorkerRequest) -> WorkerIdResponse:
    command = RegisterWorker(
        role=body.role,
        name=body.name,
        store_ids=json.dumps(body.store_ids),
        service_postcodes=json.dumps(body.service_postcodes),
        max_active_orders=body.max_active_orders,
        rating=body.rating,
    )
    result = current_domain.process(command, asynchronous=False)
    return WorkerIdResponse(worker_id=result)


@worker_router.put("/{worker_id}/online", response_model=StatusResponse)
async def go_online(worker_id: str, body: GoOnlineRequest) -> StatusResponse:
    current_domain.process(GoOnline(worker_id=worker_id, store_id=body.store_id), asynchronous=False)
    return StatusResponse(status="online")


@worker_router.put("/{worker_id}/offline", response_model=StatusResponse)
async def go_offline(worker_id: str) -> StatusResponse:
    current_domain.process(GoOffline(worker_id=worker_id), asynchronous=False)
    return StatusResponse(status="offline")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    if actor.role != ActorRole.CUSTOMER or not actor.actor_id:
        raise HTTPException(status_code=403, detail="Only a signed-in customer can place an order")
    command = PlaceOrder(
        customer_id=actor.actor_id,
        vendor_id=body.vendor_id,
        lines=json.dumps([line.model_dump() for line in body.lines]),
        delivery_postcode=body.delivery_postcode,
        currency=body.currency,
        allow_partial=body.allow_partial,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("/board", response_model=list[BoardEntry])
async def order_board(status: str | None = None, vendor_id: str | None = None) -> list[BoardEntry]:
    """Dispatch's queue of orders, filtered by status and store."""
    criteria = {}
    if status:
        criteria["status"] = status
    if vendor_id:
        criteria["vendor_id"] = vendor_id
    query = current_domain.repository_for(OrderBoardView)._dao.query
    if criteria:
        query = query.filter(**criteria)
    return [
        BoardEntry(
            order_id=str(view.order_id),
            vendor_id=str(view.vendor_id),
            status=view.status,
            picker_id=str(view.picker_id) if view.picker_id else None,
            rider_id=str(view.rider_id) if view.rider_id else None,
            item_count=view.item_count or 0,
            open_substitutions=view.open_substitutions or 0,
            total=view.total or 0.0,
        )
        for view in query.all().items
    ]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        vendor_id=str(order.vendor_id),
        status=order.status,
        labels=labels_for(order.status),
        picker_id=str(order.picker_id) if order.picker_id else None,
        rider_id=str(order.rider_id) if order.rider_id else None,
        total=order.total,
        currency=order.currency,
        items=[
            {
                "line_item_id": str(item.id),
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "unit": item.unit,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "status": item.status,
                "original_product_id": str(item.original_product_id) if item.original_product_id else None,
            }
            for item in order.items
        ],
        substitutions=[
            {
                "proposal_id": str(p.id),
                "line_item_id": str(p.line_item_id),
                "issue_type": p.issue_type,
                "decision": p.decision,
                "alternatives": p.alternative_list(),
                "chosen_alternative_id": p.chosen_alternative_id,
                "reason_code": p.reason_code,
                "deadline": p.deadline.isoformat() if p.deadline else None,
            }
            for p in order.substitutions
        ],
        event_log=[entry.as_dict() for entry in order.history()],
    )


@order_router.put("/{order_id}/accept", response_model=TransitionResponse)
async def accept_order(
    order_id: str, body: NoteRequest | None = None, actor: Actor = Depends(current_actor)
) -> TransitionResponse:
    command = AcceptOrder(
        order_id=order_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        note=body.note if body else None,
    )
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/reject", response_model=TransitionResponse)
async def reject_order(
    order_id: str, body: RejectOrderRequest | None = None, actor: Actor = Depends(current_actor)
) -> TransitionResponse:
    command = RejectOrder(
        order_id=order_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        reason=body.reason if body else None,
    )
    return TransitionResponse(**process_with_retry(command))


def _require_dispatch(actor: Actor) -> None:
    if actor.role not in (ActorRole.DISPATCH, ActorRole.ADMIN, ActorRole.SYSTEM):
        raise HTTPException(status_code=403, detail="Only dispatch may assign workers")


@order_router.put("/{order_id}/assign-picker", response_model=TransitionResponse)
async def assign_picker(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    _require_dispatch(actor)
    return TransitionResponse(**process_with_retry(AssignPicker(order_id=order_id)))


@order_router.put("/{order_id}/assign-rider", response_model=TransitionResponse)
async def assign_rider(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    _require_dispatch(actor)
    return TransitionResponse(**process_with_retry(AssignRider(order_id=order_id)))


@order_router.put("/{order_id}/reassign", response_model=TransitionResponse)
async def reassign_worker(
    order_id: str, body: ReassignWorkerRequest, actor: Actor = Depends(current_actor)
) -> TransitionResponse:
    command = ReassignWorker(order_id=order_id, role=body.role, actor_role=actor.role.value)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/decline", response_model=TransitionResponse)
async def decline_assignment(
    order_id: str, body: DeclineAssignmentRequest | None = None, actor: Actor = Depends(current_actor)
) -> TransitionResponse:
    """The assigned rider turns the delivery down; dispatch looks for another rider."""
    details = body.model_dump(exclude_none=True) if body else {}
    command = DeclineAssignment(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id, **details)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/start-picking", response_model=TransitionResponse)
async def start_picking(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    command = StartPicking(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/items/{line_item_id}/pick", response_model=ItemPickedResponse)
async def mark_item_picked(
    order_id: str, line_item_id: str, actor: Actor = Depends(current_actor)
) -> ItemPickedResponse:
    command = MarkItemPicked(
        order_id=order_id,
        line_item_id=line_item_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
    )
    return ItemPickedResponse(**process_with_retry(command))


@order_router.post("/{order_id}/items/{line_item_id}/issue", status_code=201, response_model=IssueReportedResponse)
async def report_item_issue(
    order_id: str,
    line_item_id: str,
    body: ReportIssueRequest,
    actor: Actor = Depends(current_actor),
) -> IssueReportedResponse:
    command = ReportItemIssue(
        order_id=order_id,
        line_item_id=line_item_id,
        issue_type=body.issue_type,
        alternatives=json.dumps([a.model_dump() for a in body.alternatives]),
        quantity_available=body.quantity_available,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
    )
    return IssueReportedResponse(**process_with_retry(command))


@order_router.put("/{order_id}/complete-picking", response_model=TransitionResponse)
async def complete_picking(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    command = CompletePicking(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/substitutions/{proposal_id}/resolve", response_model=SubstitutionResponse)
async def resolve_substitution(
    order_id: str,
    proposal_id: str,
    body: ResolveSubstitutionRequest,
    actor: Actor = Depends(current_actor),
) -> SubstitutionResponse:
    command = ResolveSubstitution(
        order_id=order_id,
        proposal_id=proposal_id,
        decision=body.decision,
        alternative_id=body.alternative_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
    )
    return SubstitutionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/pickup", response_model=TransitionResponse)
async def confirm_pickup(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    command = ConfirmPickup(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/deliver", response_model=TransitionResponse)
async def confirm_delivery(order_id: str, actor: Actor = Depends(current_actor)) -> TransitionResponse:
    command = ConfirmDelivery(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    return TransitionResponse(**process_with_retry(command))


@order_router.put("/{order_id}/cancel", response_model=CancellationResponse)
async def cancel_order(
    order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)
) -> CancellationResponse:
    """Cancel the order; a late override cancellation also refunds the customer."""
    command = CancelOrder(
        order_id=order_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        reason=body.reason,
        override_reason=body.override_reason,
    )
    result = process_with_retry(command)

    refund = None
    entry = result.get("entry") or {}
    if result["outcome"] == "TRANSITIONED" and entry.get("reason_code") == LATE_CANCELLATION_OVERRIDE:
        order = current_domain.repository_for(Order).get(order_id)
        outcome = get_payment_gateway().refund(order_id, order.total)
        refund = {
            "success": outcome.success,
            "amount": order.total,
            "refund_ref": outcome.refund_ref,
            "failure_reason": outcome.failure_reason,
        }
    return CancellationResponse(**result, refund=refund)


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/dispatch-sweep", response_model=SweepResponse)
async def run_dispatch_sweep(vendor_id: str | None = None) -> SweepResponse:
    """Assign waiting orders and replace offline workers. Call periodically."""
    summary = current_domain.process(RunDispatchSweep(vendor_id=vendor_id), asynchronous=False)
    return SweepResponse(**summary)


@maintenance_router.post("/expire-substitutions", response_model=ExpiryResponse)
async def expire_substitutions(as_of: str | None = None) -> ExpiryResponse:
    """Auto-reject substitution proposals past their deadline. Call periodically."""
    command = ExpireSubstitutions(as_of=datetime.fromisoformat(as_of) if as_of else None)
    expired = current_domain.process(command, asynchronous=False)
    return ExpiryResponse(expired_count=expired or 0)


@maintenance_router.post("/payment/configure", response_model=StatusResponse)
async def configure_payment(body: ConfigurePaymentRequest) -> StatusResponse:
    """Configure the fake payment collaborator (development only)."""
    gateway = get_payment_gateway()
    if not isinstance(gateway, FakePaymentGateway):
        raise HTTPException(status_code=400, detail="Payment collaborator is not configurable")
    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return StatusResponse(status="configured")
