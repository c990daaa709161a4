"""
Actor -- the identity passed into every mutating operation.

Authentication lives outside the core; callers hand in an already
authenticated Actor.  Role checks compare against the configured set of
elevated roles rather than hard-coding ADMIN.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ActorRole(Enum):
    """Operator roles."""
    ADMIN = "admin"
    WORKER = "worker"


@dataclass(frozen=True)
class Actor:
    """An authenticated operator."""
    id: UUID
    name: str
    role: ActorRole = ActorRole.WORKER

    def has_role_in(self, roles) -> bool:
        """True if this actor's role is one of ``roles`` (role values or enums)."""
        values = {r.value if isinstance(r, ActorRole) else str(r).lower() for r in roles}
        return self.role.value in values
