"""Worker registration and availability — commands and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.workforce.worker import Worker, WorkerRole


@grocery.command(part_of="Worker")
class RegisterWorker:
    role = String(required=True, choices=WorkerRole)
    name = String(required=True, max_length=150)
    store_ids = Text()  # JSON list of vendor ids
    service_postcodes = Text()  # JSON list of postcode prefixes
    max_active_orders = Integer()
    rating = Float()


@grocery.command(part_of="Worker")
class GoOnline:
    worker_id = Identifier(required=True)
    store_id = Identifier()


@grocery.command(part_of="Worker")
class GoOffline:
    worker_id = Identifier(required=True)


def _json_list(value) -> list:
    if not value:
        return []
    return json.loads(value) if isinstance(value, str) else list(value)


@grocery.command_handler(part_of=Worker)
class WorkforceHandler:
    @handle(RegisterWorker)
    def register_worker(self, command):
        worker = Worker.register(
            role=command.role,
            name=command.name,
            store_ids=_json_list(command.store_ids),
            service_postcodes=_json_list(command.service_postcodes),
            max_active_orders=command.max_active_orders,
            rating=command.rating,
        )
        current_domain.repository_for(Worker).add(worker)
        return str(worker.id)

    @handle(GoOnline)
    def go_online(self, command):
        repo = current_domain.repository_for(Worker)
        worker = repo.get(command.worker_id)
        worker.go_online(command.store_id)
        repo.add(worker)

    @handle(GoOffline)
    def go_offline(self, command):
        repo = current_domain.repository_for(Worker)
        worker = repo.get(command.worker_id)
        worker.go_offline()
        repo.add(worker)
