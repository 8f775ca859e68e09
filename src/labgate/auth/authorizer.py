"""Role-based authorization.

Roles are a closed, flat set: no hierarchy, no inheritance. Each protected
route lists the roles it admits at the point of use.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Role(str, Enum):
    ADMINISTRATOR = "administrator"
    TECHNICIAN = "technician"
    CUSTOMER = "customer"


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The request-scoped view of an authenticated user."""

    id: str
    email: str
    name: str
    role: str

    def as_dict(self) -> dict[str, str]:
        return {"id": self.id, "email": self.email, "name": self.name, "role": self.role}


def authorize(identity: AuthenticatedIdentity, allowed_roles: Iterable[Role | str]) -> Decision:
    """Membership test of the identity's role in ``allowed_roles``."""
    allowed = {Role(r).value for r in allowed_roles}
    if identity.role in allowed:
        return Decision.ALLOWED
    return Decision.DENIED
