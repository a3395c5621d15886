"""CLI test fixtures: route open_database() to an in-memory timeline."""

from collections.abc import Callable

import pytest

from tsfinder.core.config import TsFinderSettings
from tsfinder.testing import TimelineDatabase

InstallDatabase = Callable[[TimelineDatabase], list[TsFinderSettings]]


@pytest.fixture
def install_database(monkeypatch: pytest.MonkeyPatch) -> InstallDatabase:
    """Make the CLI open ``db`` instead of connecting to Cloud Spanner.

    Returns the list of settings open_database() was called with.
    """

    def install(db: TimelineDatabase) -> list[TsFinderSettings]:
        seen: list[TsFinderSettings] = []

        def fake_open_database(settings: TsFinderSettings) -> TimelineDatabase:
            seen.append(settings)
            return db

        monkeypatch.setattr("tsfinder.cli_helpers.open_database", fake_open_database)
        return seen

    return install
