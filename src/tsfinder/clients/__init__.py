"""Database client adapters."""

from tsfinder.clients.spanner import SpannerDatabase

__all__ = ["SpannerDatabase"]
