"""Identity context supplied by the host's auth collaborator on every call."""

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Actor roles."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    OPERATOR = "OPERATOR"


class IdentityContext(BaseModel):
    """
    Who is acting, in which role, on behalf of which warehouses.

    ``active_warehouse_ids`` is the actor's primary warehouse together with
    every warehouse assigned to them.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role
    active_warehouse_ids: frozenset[str] = frozenset()

    @classmethod
    def for_user(
        cls,
        user_id: str,
        role: Role,
        primary_warehouse_id: str | None = None,
        assigned_warehouse_ids: Iterable[str] = (),
    ) -> "IdentityContext":
        """Build a context from a primary warehouse plus assignments."""
        warehouses = set(assigned_warehouse_ids)
        if primary_warehouse_id:
            warehouses.add(primary_warehouse_id)
        return cls(
            user_id=user_id,
            role=role,
            active_warehouse_ids=frozenset(warehouses),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_warehouse(self, warehouse_id: str | None) -> bool:
        """True if the warehouse is in the actor's scope."""
        return warehouse_id is not None and warehouse_id in self.active_warehouse_ids
