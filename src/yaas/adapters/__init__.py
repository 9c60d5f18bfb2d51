"""Adapters - Infrastructure implementations of core interfaces.

This package contains the concrete implementations of the Protocol
interfaces defined in the core module:
- db/: asyncpg connection pool and schema creation
- auth/: identity store and org directory on PostgreSQL
- apps/: app registry on PostgreSQL
- oauth/: authorization code store on PostgreSQL
- memory: all of the above in process memory
"""
