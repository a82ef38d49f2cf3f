"""Pydantic API schemas for the grocery fulfillment surface.

These are the external API contracts, separate from domain commands. The
routes translate between them and commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class SubmitVendorRequest(BaseModel):
    store_name: str
    category: str | None = None
    contact_email: str | None = None
    postcode: str | None = None


class UpdateVendorProfileRequest(BaseModel):
    store_name: str | None = None
    category: str | None = None
    postcode: str | None = None


class DecideVendorRequest(BaseModel):
    decision: str  # "Approve" | "Reject"
    note: str | None = None


class SuspendVendorRequest(BaseModel):
    reason: str


class AddProductRequest(BaseModel):
    vendor_id: str
    name: str
    unit: str
    unit_price: float


class ChangeProductPriceRequest(BaseModel):
    unit_price: float


class RegisterWorkerRequest(BaseModel):
    role: str  # "Picker" | "Rider"
    name: str
    store_ids: list[str] = Field(default_factory=list)
    service_postcodes: list[str] = Field(default_factory=list)
    max_active_orders: int | None = None
    rating: float | None = None


class GoOnlineRequest(BaseModel):
    store_id: str | None = None


class CartLine(BaseModel):
    product_id: str
    quantity: int


class PlaceOrderRequest(BaseModel):
    vendor_id: str
    lines: list[CartLine]
    delivery_postcode: str | None = None
    currency: str = "GBP"
    allow_partial: bool = False


class NoteRequest(BaseModel):
    note: str | None = None


class RejectOrderRequest(BaseModel):
    reason: str | None = None


class ProposedAlternative(BaseModel):
    product_id: str
    quantity: int | None = None
    match_score: float | None = None


class ReportIssueRequest(BaseModel):
    issue_type: str
    alternatives: list[ProposedAlternative] = Field(default_factory=list)
    quantity_available: int | None = None


class ResolveSubstitutionRequest(BaseModel):
    decision: str  # "Approve" | "Reject"
    alternative_id: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    override_reason: str | None = None


class ReassignWorkerRequest(BaseModel):
    role: str  # "Picker" | "Rider"


class DeclineAssignmentRequest(BaseModel):
    reason_code: str | None = None
    note: str | None = None


class ConfigurePaymentRequest(BaseModel):
    should_succeed: bool
    failure_reason: str = "Card declined"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class VendorIdResponse(BaseModel):
    vendor_id: str


class ProductIdResponse(BaseModel):
    product_id: str


class WorkerIdResponse(BaseModel):
    worker_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str


class TransitionResponse(BaseModel):
    outcome: str
    order_id: str
    status: str
    labels: dict
    entry: dict | None = None
    worker_id: str | None = None


class ItemPickedResponse(BaseModel):
    order_id: str
    line_item_id: str
    item_status: str


class IssueReportedResponse(BaseModel):
    order_id: str
    proposal_id: str
    line_item_id: str
    deadline: str
    alternatives: list[dict]


class SubstitutionResponse(TransitionResponse):
    proposal_id: str
    decision: str
    total: float


class CancellationResponse(TransitionResponse):
    refund: dict | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    vendor_id: str
    status: str
    labels: dict
    picker_id: str | None = None
    rider_id: str | None = None
    total: float
    currency: str | None = None
    items: list[dict]
    substitutions: list[dict]
    event_log: list[dict]


class BoardEntry(BaseModel):
    order_id: str
    vendor_id: str
    status: str
    picker_id: str | None = None
    rider_id: str | None = None
    item_count: int
    open_substitutions: int
    total: float


class VendorDirectoryEntry(BaseModel):
    vendor_id: str
    store_name: str
    category: str | None = None
    postcode: str | None = None
    status: str
    is_orderable: bool


class SweepResponse(BaseModel):
    pickers_assigned: int
    riders_assigned: int
    reassigned: int
    waiting: int
    failed: int


class ExpiryResponse(BaseModel):
    expired_count: int
