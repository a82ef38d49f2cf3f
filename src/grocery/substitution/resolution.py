"""Substitution resolution — the customer's decision on a proposal."""

from enum import Enum

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.order import Order, SubstitutionDecision
from grocery.shared.actors import ActorRole
from grocery.shared.errors import ProposalAlreadyResolved
from grocery.utils.logging import command_context

logger = structlog.get_logger(__name__)


class CustomerDecision(Enum):
    APPROVE = "Approve"
    REJECT = "Reject"


_DECISIONS = {
    CustomerDecision.APPROVE: SubstitutionDecision.APPROVED,
    CustomerDecision.REJECT: SubstitutionDecision.REJECTED,
}


@grocery.command(part_of="Order")
class ResolveSubstitution:
    order_id = Identifier(required=True)
    proposal_id = Identifier(required=True)
    decision = String(required=True, choices=CustomerDecision)
    alternative_id = String(max_length=50)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier()


@grocery.command_handler(part_of=Order)
class SubstitutionResolutionHandler:
    @handle(ResolveSubstitution)
    def resolve_substitution(self, command):
        with command_context(order_id=str(command.order_id), proposal_id=str(command.proposal_id)):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            try:
                proposal = order.resolve_substitution(
                    proposal_id=str(command.proposal_id),
                    decision=_DECISIONS[CustomerDecision(command.decision)].value,
                    role=ActorRole(command.actor_role),
                    actor_id=str(command.actor_id) if command.actor_id else None,
                    alternative_id=command.alternative_id,
                )
            except ProposalAlreadyResolved as exc:
                logger.info("Proposal already resolved", decision=exc.decision)
                return {
                    **order.result(order.latest_entry(), outcome=ProposalAlreadyResolved.code),
                    "proposal_id": str(command.proposal_id),
                    "decision": exc.decision,
                    "total": order.total,
                }

            repo.add(order)
            logger.info("Substitution resolved", decision=proposal.decision, total=order.total)
            return {
                **order.result(order.latest_entry(), outcome="RESOLVED"),
                "proposal_id": str(proposal.id),
                "decision": proposal.decision,
                "total": order.total,
            }
