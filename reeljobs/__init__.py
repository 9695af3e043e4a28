"""Background job processing and status reconciliation for film-production tools."""

__version__ = "0.1.0"
