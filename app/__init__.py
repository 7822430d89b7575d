"""Category assignment service for multi-tenant catalogs."""

__version__ = "0.1.0"
