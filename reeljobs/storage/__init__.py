"""Job repositories."""
