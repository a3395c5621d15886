"""Tests for search value types and the error hierarchy."""

import dataclasses

import pytest

from tsfinder.contracts import (
    ExhaustionReason,
    InvariantViolation,
    MetadataError,
    ProbeError,
    SearchCancelled,
    SearchExhausted,
    SearchResult,
    SearchWindow,
    TimestampFinderError,
)


class TestSearchWindow:
    def test_halves(self) -> None:
        window = SearchWindow(0, 1_001)

        assert window.width_ns == 1_001
        assert window.midpoint_ns == 500
        assert window.earlier(500) == SearchWindow(0, 500)
        assert window.later(500) == SearchWindow(500, 1_001)

    def test_frozen(self) -> None:
        window = SearchWindow(0, 10)

        with pytest.raises(dataclasses.FrozenInstanceError):
            window.start_ns = 5  # type: ignore[misc]

    def test_str(self) -> None:
        assert str(SearchWindow(0, 1_500_000_000)) == "[1970-01-01T00:00:00Z, 1970-01-01T00:00:01.5Z)"

    def test_empty_window_allowed(self) -> None:
        assert SearchWindow(5, 5).width_ns == 0


class TestSearchResult:
    def test_rfc3339(self) -> None:
        result = SearchResult(timestamp_ns=1, budget=3, probes=2)

        assert result.rfc3339 == "1970-01-01T00:00:00.000000001Z"
        assert result.inconclusive_probes == 0


class TestErrors:
    @pytest.mark.parametrize(
        "error",
        [
            InvariantViolation("x"),
            SearchExhausted(ExhaustionReason.BUDGET, "x"),
            SearchCancelled("x"),
            ProbeError(0, "x"),
            MetadataError("x"),
        ],
    )
    def test_single_base_class(self, error: Exception) -> None:
        assert isinstance(error, TimestampFinderError)

    def test_exhaustion_reason(self) -> None:
        error = SearchExhausted(ExhaustionReason.WINDOW, "Accuracy limit reached")

        assert error.reason is ExhaustionReason.WINDOW
        assert str(error) == "Accuracy limit reached"
