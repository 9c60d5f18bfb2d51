"""RBAC core domain."""

from yaas.core.rbac.types import Action, Role

__all__ = [
    "Action",
    "Role",
]
