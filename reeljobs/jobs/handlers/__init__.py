"""Per-kind job handlers."""
