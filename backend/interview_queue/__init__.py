"""Interview queue scheduling service."""
