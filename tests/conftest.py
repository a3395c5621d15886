"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from collections.abc import Iterator

import pytest
import structlog
from hypothesis import HealthCheck, Verbosity
from hypothesis import settings as hypothesis_settings

from tsfinder.contracts import SearchWindow
from tsfinder.core.timestamps import NANOS_PER_SECOND, parse_timestamp
from tsfinder.testing import TimelineDatabase, step_truth

# Probes log through structlog; per-example timing is meaningless here.
hypothesis_settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
hypothesis_settings.register_profile(
    "nightly",
    max_examples=1000,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
hypothesis_settings.register_profile("debug", max_examples=10, deadline=None, verbosity=Verbosity.verbose)
hypothesis_settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture
def t0() -> int:
    """2024-03-01T12:00:00Z as epoch nanoseconds."""
    return parse_timestamp("2024-03-01T12:00:00Z")


@pytest.fixture
def minute_window(t0: int) -> SearchWindow:
    """[t0, t0 + 60s)"""
    return SearchWindow(t0, t0 + 60 * NANOS_PER_SECOND)


@pytest.fixture
def half_minute(t0: int) -> int:
    """Transition instant 30s into the minute window."""
    return t0 + 30 * NANOS_PER_SECOND


@pytest.fixture
def timeline(half_minute: int) -> TimelineDatabase:
    """Database whose diagnostic query holds strictly before t0 + 30s."""
    return TimelineDatabase(step_truth(half_minute))


# =============================================================================
# Logging Cleanup Fixture
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers installed by configure_logging() after each test.

    The CLI callback binds a handler to whatever sys.stderr is at the time,
    which under CliRunner is a buffer that is closed once invoke() returns.
    """
    yield
    logging.getLogger().handlers = []
    structlog.reset_defaults()
