"""Item issue reporting — command and handler.

The picker names the affected line and, optionally, substitute products from
the same store. Substitutes are priced from the live catalog, ranked, and put
to the customer with a decision deadline of SUBSTITUTION_TIMEOUT_MINUTES.
"""

import json
import os
from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from grocery.catalog.product import Product
from grocery.domain import grocery
from grocery.order.order import IssueType, Order
from grocery.shared.actors import ActorRole
from grocery.substitution.ranking import rank_alternatives
from grocery.utils.logging import command_context

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MINUTES = 10


def substitution_timeout() -> timedelta:
    return timedelta(minutes=int(os.getenv("SUBSTITUTION_TIMEOUT_MINUTES", DEFAULT_TIMEOUT_MINUTES)))


@grocery.command(part_of="Order")
class ReportItemIssue:
    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    issue_type = String(required=True, choices=IssueType)
    alternatives = Text()  # JSON: list of {"product_id", "quantity"?, "match_score"?}
    quantity_available = Integer(min_value=0)  # for Partial_Quantity
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)


def _priced_alternatives(order: Order, requested: list[dict], default_quantity: int) -> list[dict]:
    """Look up each proposed product in the vendor's live catalog; drop the unusable ones."""
    repo = current_domain.repository_for(Product)
    priced = []
    for proposed in requested:
        product_id = str(proposed.get("product_id") or "")
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning("Proposed substitute not found", product_id=product_id)
            continue
        if not product.is_active or str(product.vendor_id) != str(order.vendor_id):
            logger.warning("Proposed substitute not sold by this vendor", product_id=product_id)
            continue
        priced.append(
            {
                "product_id": str(product.id),
                "product_name": product.name,
                "unit": product.unit,
                "unit_price": product.unit_price,
                "quantity": int(proposed.get("quantity") or default_quantity),
                "match_score": proposed.get("match_score"),
            }
        )
    return priced


@grocery.command_handler(part_of=Order)
class ItemIssueHandler:
    @handle(ReportItemIssue)
    def report_item_issue(self, command):
        with command_context(order_id=str(command.order_id), actor_role=command.actor_role):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            item = order.item(command.line_item_id)

            requested = json.loads(command.alternatives) if command.alternatives else []
            candidates = _priced_alternatives(order, requested, item.quantity)

            if command.issue_type == IssueType.PARTIAL_QUANTITY.value:
                available = command.quantity_available
                if available is None or not 0 < available < item.quantity:
                    raise ValidationError(
                        {"quantity_available": [f"Must be between 1 and {item.quantity - 1} for a partial quantity"]}
                    )
                candidates.append(
                    {
                        "product_id": str(item.product_id),
                        "product_name": item.product_name,
                        "unit": item.unit,
                        "unit_price": item.unit_price,
                        "quantity": available,
                        "match_score": 1.0,
                    }
                )

            original = {"unit_price": item.unit_price, "unit": item.unit}
            proposal = order.report_issue(
                line_item_id=str(item.id),
                issue_type=command.issue_type,
                alternatives=rank_alternatives(original, candidates),
                deadline=datetime.now(UTC) + substitution_timeout(),
                role=ActorRole(command.actor_role),
                actor_id=str(command.actor_id),
            )
            repo.add(order)
            logger.info(
                "Item issue reported",
                line_item_id=str(item.id),
                issue_type=command.issue_type,
                alternatives=len(candidates),
            )
            return {
                "order_id": str(order.id),
                "proposal_id": str(proposal.id),
                "line_item_id": str(item.id),
                "deadline": proposal.deadline.isoformat(),
                "alternatives": proposal.alternative_list(),
            }
