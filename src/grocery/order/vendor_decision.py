"""Vendor decision on a placed order — commands and handler."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order
from grocery.shared.actors import ActorRole
from grocery.utils.logging import command_context


@grocery.command(part_of="Order")
class AcceptOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)
    note = Text()


@grocery.command(part_of="Order")
class RejectOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)
    reason = Text()


@grocery.command_handler(part_of=Order)
class VendorDecisionHandler:
    @handle(AcceptOrder)
    def accept_order(self, command):
        with command_context(order_id=str(command.order_id), actor_role=command.actor_role):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            entry = order.accept(ActorRole(command.actor_role), str(command.actor_id), command.note)
            repo.add(order)
            return order.result(entry)

    @handle(RejectOrder)
    def reject_order(self, command):
        with command_context(order_id=str(command.order_id), actor_role=command.actor_role):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            entry = order.reject(ActorRole(command.actor_role), str(command.actor_id), command.reason)
            repo.add(order)
            return order.result(entry)
