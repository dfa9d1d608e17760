from __future__ import annotations

import pytest

from conftest import make_payload
from syncwatch.schemas.progress import JobStatus, Snapshot
from syncwatch.services.progress.metrics import (
    format_duration,
    format_remaining,
    percent_complete,
    status_color_class,
)


def snap(**overrides) -> Snapshot:
    return Snapshot.model_validate(make_payload(**overrides))


@pytest.mark.parametrize("processed", [0, 5, 1000])
def test_percent_is_zero_when_total_unknown(processed):
    assert percent_complete(snap(total_units=0, processed_units=processed)) == 0


@pytest.mark.parametrize(
    "processed, expected",
    [(0, 0), (25, 25), (50, 50), (100, 100)],
)
def test_percent_of_hundred(processed, expected):
    assert percent_complete(snap(total_units=100, processed_units=processed)) == expected


def test_percent_rounds_half_up():
    assert percent_complete(snap(total_units=8, processed_units=1)) == 13
    assert percent_complete(snap(total_units=3, processed_units=2)) == 67
    assert percent_complete(snap(total_units=3, processed_units=1)) == 33


def test_percent_clamped_when_server_overcounts():
    assert percent_complete(snap(total_units=10, processed_units=15)) == 100


def test_percent_without_snapshot():
    assert percent_complete(None) == 0


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0s"), (59, "59s"), (60, "1m 0s"), (125, "2m 5s"), (3600, "60m 0s"), (None, "0s"), (-4, "0s")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_remaining_hidden_when_absent_or_zero():
    assert format_remaining(snap()) is None
    assert format_remaining(snap(remaining_seconds_estimate=0)) is None
    assert format_remaining(snap(remaining_seconds_estimate=90)) == "1m 30s"
    assert format_remaining(None) is None


@pytest.mark.parametrize(
    "status, color",
    [
        (JobStatus.CONNECTING, "blue"),
        ("authenticating", "blue"),
        (JobStatus.FETCHING, "blue"),
        (JobStatus.PROCESSING, "yellow"),
        (JobStatus.COMPLETED, "green"),
        (JobStatus.FAILED, "red"),
        ("cancelled", "gray"),
        (None, "gray"),
    ],
)
def test_status_color_class(status, color):
    assert status_color_class(status) == color
