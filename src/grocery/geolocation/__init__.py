"""Geolocation adapter registry — GEOLOCATION_ADAPTER selects the implementation."""

import os

from grocery.geolocation.port import GeolocationPort

_locator_instance: GeolocationPort | None = None


def get_locator() -> GeolocationPort:
    """Return the configured locator (singleton). Reads the worker registry by default."""
    global _locator_instance
    if _locator_instance is None:
        adapter = os.environ.get("GEOLOCATION_ADAPTER", "registry")
        if adapter == "registry":
            from grocery.geolocation.registry_adapter import RegistryLocator

            _locator_instance = RegistryLocator()
        else:
            raise ValueError(f"Unknown geolocation adapter: {adapter}")
    return _locator_instance


def set_locator(locator: GeolocationPort) -> None:
    global _locator_instance
    _locator_instance = locator


def reset_locator():
    """Reset the locator singleton (useful for testing)."""
    global _locator_instance
    _locator_instance = None
