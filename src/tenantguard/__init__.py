"""tenantguard - multi-tenant permission evaluation and role management."""

__version__ = "0.1.0"
