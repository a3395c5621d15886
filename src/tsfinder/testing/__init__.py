"""In-memory stand-ins for Cloud Spanner, for tests and algorithm dry runs."""

from tsfinder.testing.timeline import TimelineDatabase, step_truth

__all__ = ["TimelineDatabase", "step_truth"]
