from __future__ import annotations

from datetime import UTC, datetime

import pytest

from bustrack.cli import format_snapshot, main
from bustrack.models import (
    LocationSample,
    SessionPhase,
    TrackingSnapshot,
    VehicleStatus,
)

_TS = datetime(2026, 3, 1, 8, 15, tzinfo=UTC)


def _active(*, stale: bool = False, fetching: bool = False) -> TrackingSnapshot:
    return TrackingSnapshot(
        phase=SessionPhase.ACTIVE,
        vehicle_id="TN01AB1234",
        status=VehicleStatus(vehicle_id="TN01AB1234", operator_name="Ravi", last_updated_at=_TS, is_stale=stale),
        location=LocationSample(latitude=13.08, longitude=80.27, captured_at=_TS),
        is_fetching=fetching,
    )


def test_format_idle_snapshot() -> None:
    assert format_snapshot(TrackingSnapshot()) == "Bus (not selected)"


def test_format_live_snapshot() -> None:
    line = format_snapshot(_active())

    assert line.startswith("Bus TN01AB1234 | Driver: Ravi | Updated: ")
    assert "(13.08000, 80.27000)" in line
    assert line.endswith("Live")


def test_format_stale_fetching_and_unavailable_map() -> None:
    assert format_snapshot(_active(stale=True)).endswith("Stale")
    assert format_snapshot(_active(fetching=True)).endswith("Updating...")
    assert format_snapshot(_active(), map_available=False).endswith("[map unavailable]")


def test_main_rejects_blank_bus(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--track", "  ", "--once", "--no-map"]) == 2
    assert "Please enter a bus number" in capsys.readouterr().out


def test_main_rejects_invalid_interval(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--track", "BUS1", "--interval", "0"]) == 2
    assert "poll_interval" in capsys.readouterr().err


def test_main_without_target_when_prompt_closed(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def _eof(_prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)

    assert main(["--no-map", "--once"]) == 1
    assert "No bus selected." in capsys.readouterr().out
