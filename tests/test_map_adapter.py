from __future__ import annotations

from datetime import UTC, datetime

import pytest

from bustrack.map_adapter import MapAdapter, render_popup
from bustrack.models import LocationSample, VehicleStatus

from .fakes import RecordingBackend

_TS = datetime(2026, 3, 1, 8, 15, tzinfo=UTC)


def _sample(lat: float, lng: float) -> LocationSample:
    return LocationSample(latitude=lat, longitude=lng, captured_at=_TS)


def _status(bus: str = "TN01AB1234", driver: str = "Ravi", stale: bool = False) -> VehicleStatus:
    return VehicleStatus(vehicle_id=bus, operator_name=driver, last_updated_at=_TS, is_stale=stale)


def test_first_projection_initializes_map_at_location() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend, zoom=15, proximity_radius_m=100.0)

    assert adapter.project(_sample(13.08, 80.27), _status()) is True

    [fmap] = backend.maps
    assert fmap.data == {"container": "map", "center": (13.08, 80.27), "zoom": 15}
    [tile] = backend.attached(fmap, "tile")
    assert tile.data["key"] == "street"
    [marker] = backend.attached(fmap, "marker")
    [circle] = backend.attached(fmap, "circle")
    assert marker.data["position"] == (13.08, 80.27)
    assert circle.data == {"position": (13.08, 80.27), "radius": 100.0}
    assert "TN01AB1234" in marker.data["popup"]
    assert "Ravi" in marker.data["popup"]
    assert adapter.is_initialized


def test_later_projections_move_overlays_without_recreating() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)
    adapter.project(_sample(13.08, 80.27), _status())

    adapter.project(_sample(13.09, 80.28), _status(driver="Kumar"))

    assert backend.calls.count("create_map") == 1
    assert backend.calls.count("add_tile_layer") == 1
    assert backend.calls.count("add_marker") == 1
    [fmap] = backend.maps
    [marker] = backend.attached(fmap, "marker")
    [circle] = backend.attached(fmap, "circle")
    assert marker.data["position"] == (13.09, 80.28)
    assert circle.data["position"] == (13.09, 80.28)
    assert fmap.data["center"] == (13.09, 80.28)
    assert "Kumar" in marker.data["popup"]


def test_projection_without_location_is_a_no_op_before_init() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)

    assert adapter.project(None, _status()) is False
    assert backend.calls == []
    assert not adapter.is_initialized


def test_projection_without_location_removes_overlays() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)
    adapter.project(_sample(1.0, 2.0), _status())

    adapter.project(None, None)

    [fmap] = backend.maps
    assert backend.attached(fmap, "marker") == []
    assert backend.attached(fmap, "circle") == []
    assert len(backend.attached(fmap, "tile")) == 1

    adapter.project(_sample(3.0, 4.0), _status())
    [marker] = backend.attached(fmap, "marker")
    assert marker.data["position"] == (3.0, 4.0)
    assert backend.calls.count("create_map") == 1


def test_set_layer_keeps_exactly_one_base_layer() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)
    adapter.project(_sample(1.0, 2.0), _status())
    [fmap] = backend.maps

    for key in ["satellite", "terrain", "terrain", "street", "satellite"]:
        assert adapter.set_layer(key) is True
        tiles = backend.attached(fmap, "tile")
        assert [t.data["key"] for t in tiles] == [key]
        assert adapter.active_layer == key


def test_set_layer_unknown_key_keeps_current_layer() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)
    adapter.project(_sample(1.0, 2.0), _status())
    adapter.set_layer("satellite")

    assert adapter.set_layer("moon") is False

    [fmap] = backend.maps
    assert [t.data["key"] for t in backend.attached(fmap, "tile")] == ["satellite"]
    assert adapter.active_layer == "satellite"


def test_set_layer_before_map_selects_initial_layer() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)

    assert adapter.set_layer("terrain") is True
    assert backend.calls == []

    adapter.project(_sample(1.0, 2.0), _status())
    [fmap] = backend.maps
    assert [t.data["key"] for t in backend.attached(fmap, "tile")] == ["terrain"]


def test_dispose_destroys_map_and_is_safe_to_repeat() -> None:
    backend = RecordingBackend()
    adapter = MapAdapter(backend)
    adapter.dispose()
    assert backend.calls == []

    adapter.project(_sample(1.0, 2.0), _status())
    adapter.dispose()
    adapter.dispose()

    assert backend.destroyed == backend.maps
    assert not adapter.is_initialized

    adapter.project(_sample(1.0, 2.0), _status())
    assert backend.calls.count("create_map") == 2


@pytest.mark.parametrize("fail_on", ["create_map", "add_tile_layer", "add_circle"])
def test_backend_failure_degrades_to_unavailable(fail_on: str) -> None:
    backend = RecordingBackend(fail_on=fail_on)
    adapter = MapAdapter(backend)

    assert adapter.project(_sample(1.0, 2.0), _status()) is False

    assert adapter.available is False
    assert not adapter.is_initialized
    # Partially created maps are torn down.
    assert backend.destroyed == backend.maps
    assert adapter.project(_sample(1.0, 2.0), _status()) is False
    assert backend.calls.count("create_map") == 1


def test_dispose_rearms_after_failure() -> None:
    backend = RecordingBackend(fail_on="add_marker")
    adapter = MapAdapter(backend)
    adapter.project(_sample(1.0, 2.0), _status())
    assert adapter.available is False

    backend.fail_on = None
    adapter.dispose()

    assert adapter.available is True
    assert adapter.project(_sample(1.0, 2.0), _status()) is True


def test_missing_backend_is_unavailable() -> None:
    adapter = MapAdapter(None)

    assert adapter.available is False
    assert adapter.project(_sample(1.0, 2.0), _status()) is False
    assert adapter.set_layer("satellite") is True
    adapter.dispose()
    assert adapter.available is False


def test_unknown_default_layer_rejected() -> None:
    with pytest.raises(ValueError):
        MapAdapter(RecordingBackend(), default_layer="moon")


def test_render_popup_escapes_and_flags_stale() -> None:
    popup = render_popup(_status(bus="<B1>", driver="", stale=True))

    assert "&lt;B1&gt;" in popup
    assert "Driver: N/A" in popup
    assert "outdated" in popup
    assert "Bus" in render_popup(None)
