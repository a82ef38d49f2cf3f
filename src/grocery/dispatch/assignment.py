"""Dispatch assignment — commands and handler.

Assigning a worker writes two aggregates in one unit of work: the worker takes
a slot and the order records the worker. Both carry a version, so a racing
assignment fails on save and the retried command sees the order already
assigned and reports the existing worker instead.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from grocery.dispatch.strategies import get_strategy
from grocery.domain import grocery
from grocery.geolocation import get_locator
from grocery.order.order import REASSIGNABLE_STAGES, Order
from grocery.order.state_machine import OrderStatus, authorize
from grocery.shared.actors import ActorRole
from grocery.shared.errors import (
    RIDER_DECLINED,
    WORKER_UNAVAILABLE,
    IllegalTransition,
    NoPickerAvailable,
    NoRiderAvailable,
)
from grocery.utils.logging import command_context
from grocery.workforce.worker import Worker, WorkerRole

logger = structlog.get_logger(__name__)

ASSIGNED = "ASSIGNED"
ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
REASSIGNED = "REASSIGNED"
DECLINED = "DECLINED"

# Roles allowed to pull a worker off an order
_REASSIGNERS = {ActorRole.DISPATCH, ActorRole.ADMIN, ActorRole.SYSTEM}


@grocery.command(part_of="Order")
class AssignPicker:
    order_id = Identifier(required=True)


@grocery.command(part_of="Order")
class AssignRider:
    order_id = Identifier(required=True)


@grocery.command(part_of="Order")
class ReassignWorker:
    """Replace the picker or rider of an order, typically because they went offline."""

    order_id = Identifier(required=True)
    role = String(required=True, choices=WorkerRole)
    actor_role = String(choices=ActorRole, default=ActorRole.DISPATCH.value)
    reason_code = String(max_length=50, default=WORKER_UNAVAILABLE)


@grocery.command(part_of="Order")
class DeclineAssignment:
    """The assigned rider turns the delivery down."""

    order_id = Identifier(required=True)
    actor_role = String(required=True, choices=ActorRole)
    actor_id = Identifier(required=True)
    reason_code = String(max_length=50, default=RIDER_DECLINED)
    note = Text()


def _outcome(outcome: str, order: Order, worker_id: str, entry=None) -> dict:
    return {**order.result(entry, outcome), "worker_id": worker_id}


def _eligible_workers(candidate_ids: list[str], role: WorkerRole, exclude: set[str]) -> list[Worker]:
    repo = current_domain.repository_for(Worker)
    workers = []
    for worker_id in candidate_ids:
        if worker_id in exclude:
            continue
        try:
            worker = repo.get(worker_id)
        except ObjectNotFoundError:
            continue
        if worker.role == role.value and worker.is_available:
            workers.append(worker)
    return workers


def select_worker(order: Order, role: WorkerRole, exclude: set[str] | None = None) -> Worker:
    """Pick one available worker for the order or raise the matching NoWorkerAvailable."""
    locator = get_locator()
    if role == WorkerRole.PICKER:
        candidate_ids = locator.picker_candidates(str(order.vendor_id))
    else:
        candidate_ids = locator.rider_candidates(str(order.vendor_id), order.delivery_postcode)

    worker = get_strategy().choose(order, _eligible_workers(candidate_ids, role, exclude or set()))
    if worker is None:
        error = NoPickerAvailable if role == WorkerRole.PICKER else NoRiderAvailable
        raise error({"order_id": [f"No {role.value.lower()} is available for order {order.id}"]})
    return worker


@grocery.command_handler(part_of=Order)
class AssignmentHandler:
    def _assign(self, order_id: str, role: WorkerRole) -> dict:
        order_repo = current_domain.repository_for(Order)
        worker_repo = current_domain.repository_for(Worker)
        order = order_repo.get(order_id)

        actor = ActorRole.PICKER if role == WorkerRole.PICKER else ActorRole.RIDER
        existing = order.active_worker(actor)
        if existing:
            logger.info("Order already assigned", worker_role=role.value, worker_id=existing)
            return _outcome(ALREADY_ASSIGNED, order, existing)

        target = OrderStatus.PICKER_ASSIGNED if role == WorkerRole.PICKER else OrderStatus.RIDER_ASSIGNED
        authorize(OrderStatus(order.status), target, ActorRole.DISPATCH)

        worker = select_worker(order, role)
        if role == WorkerRole.PICKER:
            entry = order.assign_picker(str(worker.id))
        else:
            entry = order.assign_rider(str(worker.id))
        worker.reserve(str(order.id))

        worker_repo.add(worker)
        order_repo.add(order)
        logger.info("Worker assigned", worker_role=role.value, worker_id=str(worker.id))
        return _outcome(ASSIGNED, order, str(worker.id), entry)

    @handle(AssignPicker)
    def assign_picker(self, command):
        with command_context(order_id=str(command.order_id), command="AssignPicker"):
            return self._assign(command.order_id, WorkerRole.PICKER)

    @handle(AssignRider)
    def assign_rider(self, command):
        with command_context(order_id=str(command.order_id), command="AssignRider"):
            return self._assign(command.order_id, WorkerRole.RIDER)

    @handle(ReassignWorker)
    def reassign_worker(self, command):
        if ActorRole(command.actor_role) not in _REASSIGNERS:
            raise IllegalTransition({"actor_role": [f"{command.actor_role} may not reassign workers"]})

        role = WorkerRole(command.role)
        reason_code = command.reason_code or WORKER_UNAVAILABLE
        with command_context(order_id=str(command.order_id), command="ReassignWorker"):
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(command.order_id)

            actor = ActorRole.PICKER if role == WorkerRole.PICKER else ActorRole.RIDER
            if OrderStatus(order.status) not in REASSIGNABLE_STAGES[actor]:
                raise IllegalTransition(
                    {"status": [f"Cannot reassign the {role.value.lower()} while the order is {order.status}"]}
                )

            current = order.active_worker(actor) or ""
            exclude = {current}
            if role == WorkerRole.RIDER:
                exclude |= order.declined_riders()
            worker = select_worker(order, role, exclude=exclude)
            if role == WorkerRole.PICKER:
                entry = order.reassign_picker(str(worker.id), reason_code)
            else:
                entry = order.reassign_rider(str(worker.id), reason_code)
            worker.reserve(str(order.id))

            current_domain.repository_for(Worker).add(worker)
            order_repo.add(order)
            logger.info(
                "Worker reassigned",
                worker_role=role.value,
                previous_worker_id=current,
                worker_id=str(worker.id),
                reason_code=reason_code,
            )
            return _outcome(REASSIGNED, order, str(worker.id), entry)

    @handle(DeclineAssignment)
    def decline_assignment(self, command):
        """Unbind the declining rider, then offer the order to another one.

        When no other rider is free the order keeps waiting in Rider_Assigned
        without a rider, and the dispatch sweep picks it up on a later pass.
        """
        reason_code = command.reason_code or RIDER_DECLINED
        with command_context(order_id=str(command.order_id), command="DeclineAssignment"):
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(command.order_id)

            entry = order.decline_rider(
                ActorRole(command.actor_role), str(command.actor_id), reason_code, command.note
            )
            logger.info("Rider declined delivery", rider_id=str(command.actor_id), reason_code=reason_code)

            try:
                worker = select_worker(order, WorkerRole.RIDER, exclude=order.declined_riders())
            except NoRiderAvailable:
                order_repo.add(order)
                logger.info("No other rider available, order waits for the dispatch sweep")
                return _outcome(DECLINED, order, None, entry)

            entry = order.reassign_rider(str(worker.id), reason_code)
            worker.reserve(str(order.id))
            current_domain.repository_for(Worker).add(worker)
            order_repo.add(order)
            logger.info("Replacement rider assigned", worker_id=str(worker.id))
            return _outcome(REASSIGNED, order, str(worker.id), entry)
