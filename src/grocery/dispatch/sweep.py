"""Dispatch sweep — background retry for orders waiting on a worker.

Meant to be triggered periodically by an external scheduler through the
maintenance API. Each pass:

- assigns pickers to accepted orders that have none,
- assigns riders to orders whose picking is complete,
- reassigns orders whose picker or rider has gone offline,
- finds a rider for orders whose rider declined them.

Candidate orders are read from the OrderBoardView projection; each per-order
command reloads the order itself.

Capacity errors are expected here and only logged; the next pass tries again.
Running the sweep twice in a row does no extra work.
"""

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from grocery.dispatch.assignment import AssignPicker, AssignRider, ReassignWorker
from grocery.domain import grocery
from grocery.order.order import Order
from grocery.order.state_machine import OrderStatus
from grocery.projections.order_board import OrderBoardView
from grocery.shared.actors import ActorRole
from grocery.shared.errors import NoWorkerAvailable
from grocery.utils.retry import process_with_retry
from grocery.workforce.worker import Worker, WorkerRole

logger = structlog.get_logger(__name__)


@grocery.command(part_of="Order")
class RunDispatchSweep:
    vendor_id = Identifier()  # Optional: restrict the pass to one store


def _orders_in(status: OrderStatus, vendor_id: str | None) -> list[OrderBoardView]:
    criteria = {"status": status.value}
    if vendor_id:
        criteria["vendor_id"] = vendor_id
    return current_domain.repository_for(OrderBoardView)._dao.query.filter(**criteria).all().items


def _is_offline(worker_id: str | None) -> bool:
    if not worker_id:
        return False
    try:
        return not current_domain.repository_for(Worker).get(worker_id).is_online
    except ObjectNotFoundError:
        return True


@grocery.command_handler(part_of=Order)
class DispatchSweepHandler:
    def _attempt(self, command, summary: dict, key: str) -> None:
        try:
            process_with_retry(command)
            summary[key] += 1
        except NoWorkerAvailable as exc:
            summary["waiting"] += 1
            logger.info("No worker available yet", order_id=str(command.order_id), code=exc.code)
        except (ValidationError, InvalidOperationError) as exc:
            summary["failed"] += 1
            logger.warning(
                "Dispatch sweep could not process order",
                order_id=str(command.order_id),
                command=command.__class__.__name__,
                error=str(exc),
            )

    @handle(RunDispatchSweep)
    def run_sweep(self, command):
        vendor_id = str(command.vendor_id) if command.vendor_id else None
        summary = {"pickers_assigned": 0, "riders_assigned": 0, "reassigned": 0, "waiting": 0, "failed": 0}

        for view in _orders_in(OrderStatus.VENDOR_ACCEPTED, vendor_id):
            self._attempt(AssignPicker(order_id=str(view.order_id)), summary, "pickers_assigned")

        for view in _orders_in(OrderStatus.PICKED_COMPLETE, vendor_id):
            self._attempt(AssignRider(order_id=str(view.order_id)), summary, "riders_assigned")

        for status in (OrderStatus.PICKER_ASSIGNED, OrderStatus.PICKING):
            for view in _orders_in(status, vendor_id):
                if _is_offline(view.picker_id):
                    self._attempt(
                        ReassignWorker(
                            order_id=str(view.order_id),
                            role=WorkerRole.PICKER.value,
                            actor_role=ActorRole.SYSTEM.value,
                        ),
                        summary,
                        "reassigned",
                    )

        for view in _orders_in(OrderStatus.RIDER_ASSIGNED, vendor_id):
            # No rider attached means the last one declined the delivery
            if not view.rider_id or _is_offline(view.rider_id):
                self._attempt(
                    ReassignWorker(
                        order_id=str(view.order_id),
                        role=WorkerRole.RIDER.value,
                        actor_role=ActorRole.SYSTEM.value,
                    ),
                    summary,
                    "reassigned",
                )

        logger.info("Dispatch sweep finished", **summary)
        return summary
