"""Client-side job status reconciliation."""
