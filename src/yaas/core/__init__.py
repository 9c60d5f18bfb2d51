"""Core domain: authorization engine, access control and auth context."""
