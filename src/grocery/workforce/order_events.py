"""Worker slots follow the order lifecycle.

A picker's slot is freed when picking completes and a rider's when the order
is delivered or the rider declines it. Cancellation and reassignment free both.
Releasing a slot that is no longer held is a no-op, so replays are harmless.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from grocery.domain import grocery
from grocery.order.events import (
    OrderCancelled,
    OrderDelivered,
    PickerReassigned,
    PickingCompleted,
    RiderDeclined,
    RiderReassigned,
)
from grocery.workforce.worker import Worker

logger = structlog.get_logger(__name__)


def _release(worker_id: str | None, order_id: str, completed: bool = False) -> None:
    if not worker_id:
        return
    repo = current_domain.repository_for(Worker)
    try:
        worker = repo.get(worker_id)
    except ObjectNotFoundError:
        logger.warning("Worker not found while releasing order", worker_id=worker_id, order_id=order_id)
        return

    if worker.release(order_id, completed=completed):
        repo.add(worker)
        logger.info(
            "Worker released from order",
            worker_id=worker_id,
            order_id=order_id,
            completed=completed,
        )


@grocery.event_handler(part_of=Worker, stream_category="grocery::order")
class OrderLifecycleHandler:
    """Frees worker capacity as orders move through their stages."""

    @handle(PickingCompleted)
    def on_picking_completed(self, event: PickingCompleted) -> None:
        _release(str(event.picker_id), str(event.order_id), completed=True)

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        _release(str(event.rider_id), str(event.order_id), completed=True)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        _release(event.picker_id and str(event.picker_id), str(event.order_id))
        _release(event.rider_id and str(event.rider_id), str(event.order_id))

    @handle(PickerReassigned)
    def on_picker_reassigned(self, event: PickerReassigned) -> None:
        _release(str(event.previous_picker_id), str(event.order_id))

    @handle(RiderReassigned)
    def on_rider_reassigned(self, event: RiderReassigned) -> None:
        _release(str(event.previous_rider_id), str(event.order_id))

    @handle(RiderDeclined)
    def on_rider_declined(self, event: RiderDeclined) -> None:
        _release(str(event.rider_id), str(event.order_id))
