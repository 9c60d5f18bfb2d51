"""yaas - multi-tenant single sign-on service."""

__version__ = "0.1.0"
