"""Authorization code store adapters."""

from .postgres import PostgresOAuthCodeRepository

__all__ = ["PostgresOAuthCodeRepository"]
