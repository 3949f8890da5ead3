"""HTTP API for triggering runs and querying ranks."""
