"""Core infrastructure: configuration, logging and timestamp arithmetic."""
