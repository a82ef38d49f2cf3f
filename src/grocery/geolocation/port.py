"""Geolocation collaborator port — who is near enough to take an order.

Returned candidate lists are opaque to the dispatch coordinator: it filters
them for availability and lets the selection strategy pick one.
"""

from abc import ABC, abstractmethod


class GeolocationPort(ABC):
    @abstractmethod
    def picker_candidates(self, vendor_id: str) -> list[str]:
        """Ids of pickers who can work at the vendor's store."""
        ...

    @abstractmethod
    def rider_candidates(self, vendor_id: str, postcode: str | None) -> list[str]:
        """Ids of riders who can collect from the vendor and deliver to `postcode`."""
        ...
