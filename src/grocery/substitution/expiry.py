"""Substitution expiry — auto-reject proposals the customer did not answer in time.

Designed to be triggered periodically by an external scheduler via the
maintenance API endpoint. Each overdue proposal is rejected with reason
AUTO_REJECTED_TIMEOUT and its item marked out of stock. Candidates come from
the OrderBoardView projection, which keeps each open proposal's deadline; the
per-order command then reloads the order. A proposal that is already resolved
is skipped, so firing the sweep twice changes nothing.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order
from grocery.order.state_machine import OrderStatus
from grocery.projections.order_board import OrderBoardView, has_overdue_substitution
from grocery.utils.retry import process_with_retry

logger = structlog.get_logger(__name__)


@grocery.command(part_of="Order")
class ExpireSubstitutions:
    """Reject every overdue proposal across orders that are being picked."""

    as_of = DateTime()  # Optional: defaults to now


@grocery.command(part_of="Order")
class ExpireOrderSubstitutions:
    order_id = Identifier(required=True)
    as_of = DateTime(required=True)


@grocery.command_handler(part_of=Order)
class SubstitutionExpiryHandler:
    @handle(ExpireSubstitutions)
    def expire_substitutions(self, command):
        as_of = command.as_of or datetime.now(UTC)

        picking = (
            current_domain.repository_for(OrderBoardView)
            ._dao.query.filter(status=OrderStatus.PICKING.value)
            .all()
            .items
        )
        overdue = [view for view in picking if has_overdue_substitution(view, as_of)]
        if not overdue:
            logger.info("No overdue substitution proposals", as_of=as_of.isoformat())
            return 0

        expired_count = 0
        for view in overdue:
            try:
                expired_count += process_with_retry(ExpireOrderSubstitutions(order_id=str(view.order_id), as_of=as_of))
            except (ValidationError, InvalidOperationError) as exc:
                logger.warning(
                    "Failed to expire substitutions",
                    order_id=str(view.order_id),
                    error=str(exc),
                )

        logger.info("Substitution expiry complete", expired_count=expired_count)
        return expired_count

    @handle(ExpireOrderSubstitutions)
    def expire_order_substitutions(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        expired = order.expire_substitutions(command.as_of)
        if expired:
            repo.add(order)
            logger.info(
                "Auto-rejected overdue proposals",
                order_id=str(order.id),
                proposal_ids=[str(p.id) for p in expired],
            )
        return len(expired)
