"""Actor roles carried in every command envelope.

The identity collaborator authenticates the caller and hands over a role and an
actor id; guards compare them against the transition table and against the
worker or vendor bound to the order.
"""

from enum import Enum


class ActorRole(Enum):
    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    PICKER = "Picker"
    RIDER = "Rider"
    DISPATCH = "Dispatch"
    ADMIN = "Admin"
    SYSTEM = "System"


ALL_ROLES = frozenset(ActorRole)

# Roles allowed to run back-office operations (vendor approval, forced reassignment)
BACK_OFFICE_ROLES = frozenset({ActorRole.ADMIN, ActorRole.SYSTEM})


def parse_role(value: str | ActorRole) -> ActorRole:
    """Return the ActorRole for a raw value, accepting any letter case."""
    if isinstance(value, ActorRole):
        return value
    for role in ActorRole:
        if role.value.lower() == str(value).lower():
            return role
    raise ValueError(f"Unknown actor role: {value}")
