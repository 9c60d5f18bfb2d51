"""App registry adapters."""

from .postgres import PostgresAppRepository

__all__ = ["PostgresAppRepository"]
