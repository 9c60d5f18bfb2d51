"""Identity store and org directory adapters."""

from .postgres import PostgresAuthRepository

__all__ = ["PostgresAuthRepository"]
