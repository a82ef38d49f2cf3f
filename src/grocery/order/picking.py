"""Order picking — commands and handler.

Covers the in-store phase: the assigned picker starts the pick, marks items
as collected, and completes picking once no item is left unpicked or waiting
on a substitution decision.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order
from grocery.shared.actors import ActorRole


@grocery.command(part_of="Order")
class StartPicking:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


@grocery.command(part_of="Order")
class MarkItemPicked:
    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


@grocery.command(part_of="Order")
class CompletePicking:
    """Close the pick. Items acknowledged out of stock no longer block it."""

    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


@grocery.command_handler(part_of=Order)
class PickingHandler:
    @handle(StartPicking)
    def start_picking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        entry = order.start_picking(ActorRole(command.actor_role), str(command.actor_id))
        repo.add(order)
        return order.result(entry)

    @handle(MarkItemPicked)
    def mark_item_picked(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        item = order.mark_item_picked(command.line_item_id, ActorRole(command.actor_role), str(command.actor_id))
        repo.add(order)
        return {"order_id": str(order.id), "line_item_id": str(item.id), "item_status": item.status}

    @handle(CompletePicking)
    def complete_picking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        entry = order.complete_picking(ActorRole(command.actor_role), str(command.actor_id))
        repo.add(order)
        return order.result(entry)
