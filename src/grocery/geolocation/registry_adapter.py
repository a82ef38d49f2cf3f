"""Worker-registry locator — the default geolocation adapter.

Pickers qualify when affiliated with the vendor's store and checked in there.
Riders qualify when one of their service areas matches the outward code of the
delivery postcode, or when they have no service area configured.
"""

from protean.utils.globals import current_domain

from grocery.geolocation.port import GeolocationPort
from grocery.workforce.worker import Worker, WorkerRole


class RegistryLocator(GeolocationPort):
    def _online(self, role: WorkerRole) -> list[Worker]:
        return (
            current_domain.repository_for(Worker)
            ._dao.query.filter(role=role.value, is_online=True)
            .all()
            .items
        )

    def picker_candidates(self, vendor_id: str) -> list[str]:
        return [str(w.id) for w in self._online(WorkerRole.PICKER) if w.works_at(vendor_id)]

    def rider_candidates(self, vendor_id: str, postcode: str | None) -> list[str]:
        return [str(w.id) for w in self._online(WorkerRole.RIDER) if w.covers(postcode)]
