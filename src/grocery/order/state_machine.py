"""Fulfillment state machine — the transition table every order command goes through.

    Placed → Vendor_Accepted → Picker_Assigned → Picking → Picked_Complete
           → Rider_Assigned → In_Transit → Delivered
    Placed → Vendor_Rejected
    {Placed … Picked_Complete} → Cancelled
    {Rider_Assigned, In_Transit} → Cancelled   (override reason required)

Each edge names the actor roles allowed to trigger it. The Order aggregate asks
`authorize()` before it writes a new status; nothing else decides legality.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from grocery.shared.actors import ALL_ROLES, ActorRole
from grocery.shared.errors import IllegalTransition


class OrderStatus(Enum):
    PLACED = "Placed"
    VENDOR_ACCEPTED = "Vendor_Accepted"
    VENDOR_REJECTED = "Vendor_Rejected"
    PICKER_ASSIGNED = "Picker_Assigned"
    PICKING = "Picking"
    PICKED_COMPLETE = "Picked_Complete"
    RIDER_ASSIGNED = "Rider_Assigned"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.VENDOR_REJECTED})


@dataclass(frozen=True)
class Edge:
    source: OrderStatus
    target: OrderStatus
    roles: frozenset
    requires_override: bool = False

    def permits(self, role: ActorRole) -> bool:
        return role in self.roles


def _cancel_edge(source: OrderStatus, requires_override: bool = False) -> Edge:
    return Edge(source, OrderStatus.CANCELLED, ALL_ROLES, requires_override)


_EDGES = (
    Edge(OrderStatus.PLACED, OrderStatus.VENDOR_ACCEPTED, frozenset({ActorRole.VENDOR})),
    Edge(OrderStatus.PLACED, OrderStatus.VENDOR_REJECTED, frozenset({ActorRole.VENDOR})),
    Edge(OrderStatus.VENDOR_ACCEPTED, OrderStatus.PICKER_ASSIGNED, frozenset({ActorRole.DISPATCH})),
    Edge(OrderStatus.PICKER_ASSIGNED, OrderStatus.PICKING, frozenset({ActorRole.PICKER})),
    Edge(OrderStatus.PICKING, OrderStatus.PICKED_COMPLETE, frozenset({ActorRole.PICKER})),
    Edge(OrderStatus.PICKED_COMPLETE, OrderStatus.RIDER_ASSIGNED, frozenset({ActorRole.DISPATCH})),
    Edge(OrderStatus.RIDER_ASSIGNED, OrderStatus.IN_TRANSIT, frozenset({ActorRole.RIDER})),
    Edge(OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED, frozenset({ActorRole.RIDER})),
    _cancel_edge(OrderStatus.PLACED),
    _cancel_edge(OrderStatus.VENDOR_ACCEPTED),
    _cancel_edge(OrderStatus.PICKER_ASSIGNED),
    _cancel_edge(OrderStatus.PICKING),
    _cancel_edge(OrderStatus.PICKED_COMPLETE),
    _cancel_edge(OrderStatus.RIDER_ASSIGNED, requires_override=True),
    _cancel_edge(OrderStatus.IN_TRANSIT, requires_override=True),
)

TRANSITIONS = {(edge.source, edge.target): edge for edge in _EDGES}


def edge_for(current: OrderStatus, target: OrderStatus) -> Edge | None:
    return TRANSITIONS.get((current, target))


def authorize(
    current: OrderStatus,
    target: OrderStatus,
    role: ActorRole,
    override_reason: str | None = None,
) -> Edge:
    """Return the edge for `current → target` if `role` may take it.

    Raises IllegalTransition when there is no such edge, when the role is not
    authorized for it, or when the edge needs an override reason that is missing.
    """
    edge = edge_for(current, target)
    if edge is None:
        raise IllegalTransition({"status": [f"No transition from {current.value} to {target.value}"]})
    if not edge.permits(role):
        raise IllegalTransition(
            {"actor_role": [f"{role.value} may not move an order from {current.value} to {target.value}"]}
        )
    if edge.requires_override and not (override_reason or "").strip():
        raise IllegalTransition(
            {"override_reason": [f"Cancelling an order in {current.value} requires an override reason"]}
        )
    return edge


def allowed_targets(current: OrderStatus, role: ActorRole | None = None) -> set[OrderStatus]:
    """Statuses reachable in one step from `current`, optionally for one role."""
    return {
        edge.target
        for edge in _EDGES
        if edge.source == current and (role is None or edge.permits(role))
    }


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_valid_path(statuses: Iterable[OrderStatus]) -> bool:
    """True when `statuses` starts at Placed and follows only defined edges."""
    statuses = list(statuses)
    if not statuses or statuses[0] != OrderStatus.PLACED:
        return False
    return all((prev, nxt) in TRANSITIONS for prev, nxt in zip(statuses, statuses[1:], strict=False))
