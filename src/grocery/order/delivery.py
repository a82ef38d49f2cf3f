"""Order delivery — the rider confirms pickup at the store and delivery to the customer."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order
from grocery.shared.actors import ActorRole


@grocery.command(part_of="Order")
class ConfirmPickup:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


@grocery.command(part_of="Order")
class ConfirmDelivery:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


@grocery.command_handler(part_of=Order)
class DeliveryHandler:
    @handle(ConfirmPickup)
    def confirm_pickup(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        entry = order.confirm_pickup(ActorRole(command.actor_role), str(command.actor_id))
        repo.add(order)
        return order.result(entry)

    @handle(ConfirmDelivery)
    def confirm_delivery(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        entry = order.confirm_delivery(ActorRole(command.actor_role), str(command.actor_id))
        repo.add(order)
        return order.result(entry)
