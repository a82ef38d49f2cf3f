"""Order cancellation — command and handler.

Cancelling is an ordinary guarded transition. Before rider assignment any
actor may cancel; afterwards an override reason is required and the entry is
tagged LATE_CANCELLATION_OVERRIDE so the caller can arrange the refund.
Cancelling a cancelled order changes nothing and reports NO_CHANGE.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order
from grocery.shared.actors import ActorRole
from grocery.utils.logging import command_context

logger = structlog.get_logger(__name__)


@grocery.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()
    reason = Text()
    override_reason = Text()


@grocery.command_handler(part_of=Order)
class CancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        with command_context(order_id=str(command.order_id), actor_role=command.actor_role):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            entry = order.cancel(
                ActorRole(command.actor_role),
                str(command.actor_id) if command.actor_id else None,
                reason=command.reason,
                override_reason=command.override_reason,
            )
            if entry is None:
                logger.info("Order already cancelled")
                return order.result(order.latest_entry(), outcome="NO_CHANGE")

            repo.add(order)
            if entry.reason_code:
                logger.warning("Late cancellation override", reason_code=entry.reason_code, total=order.total)
            else:
                logger.info("Order cancelled")
            return order.result(entry)
