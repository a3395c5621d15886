"""
tsfinder: point-in-time recovery timestamp search for Cloud Spanner.

Bisects a time window with snapshot reads of a diagnostic query to find the
last instant at which the query still returned true, so a backup or stale
read can be taken immediately before an unwanted change.
"""

__version__ = "0.1.0"
