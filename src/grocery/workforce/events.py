"""Workforce domain events."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from grocery.domain import grocery


@grocery.event(part_of="Worker")
class WorkerRegistered:
    __version__ = 1

    worker_id = Identifier(required=True)
    role = String(required=True)
    name = String(required=True)
    store_ids = Text()  # JSON list
    service_postcodes = Text()  # JSON list
    registered_at = DateTime(required=True)


@grocery.event(part_of="Worker")
class WorkerWentOnline:
    __version__ = 1

    worker_id = Identifier(required=True)
    role = String(required=True)
    store_id = Identifier()
    online_at = DateTime(required=True)


@grocery.event(part_of="Worker")
class WorkerWentOffline:
    """A worker stopped taking orders. Orders they hold are picked up by the dispatch sweep."""

    __version__ = 1

    worker_id = Identifier(required=True)
    role = String(required=True)
    active_order_count = Integer(default=0)
    offline_at = DateTime(required=True)


@grocery.event(part_of="Worker")
class WorkerReserved:
    __version__ = 1

    worker_id = Identifier(required=True)
    order_id = Identifier(required=True)
    active_order_count = Integer(required=True)
    reserved_at = DateTime(required=True)


@grocery.event(part_of="Worker")
class WorkerReleased:
    __version__ = 1

    worker_id = Identifier(required=True)
    order_id = Identifier(required=True)
    completed = Boolean(default=False)
    active_order_count = Integer(required=True)
    released_at = DateTime(required=True)
