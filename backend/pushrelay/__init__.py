"""Push notification relay service."""
