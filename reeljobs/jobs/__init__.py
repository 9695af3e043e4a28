"""Job domain: models, errors, dispatch and handlers."""
