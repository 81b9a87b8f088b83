"""
Tests for markers.py - map marker projection and GeoJSON export.

These tests verify:
- Sightings without usable coordinates never become markers
- One marker per (name, lat, lon), verified wins
- Kind, color and ordering by display priority
"""

from ft.core.models import Location, Role, Status
from ft.domain.markers import project_markers, markers_to_geojson, marker_kind, marker_description

from conftest import make_sighting, BASE_LAT, BASE_LON


def located(lat, lon, **kw):
    s = make_sighting(**kw)
    s.location = Location(latitude=lat, longitude=lon)
    return s


class TestProjection:
    def test_invalid_coordinates_dropped(self):
        ok = located(BASE_LAT, BASE_LON, id="ok")
        text = located("52.5", BASE_LON, id="text")
        missing = located(None, BASE_LON, id="missing")
        nan = located(float("nan"), BASE_LON, id="nan")

        markers = project_markers([ok, text, missing, nan])

        assert [m.id for m in markers] == ["ok"]

    def test_zero_coordinates_are_valid(self):
        assert len(project_markers([located(0, 0)])) == 1

    def test_verified_wins_the_slot(self):
        """Pending first, verified later: the marker is the verified one."""
        pending = make_sighting(id="p", crowd_level="Light")
        verified = make_sighting(id="v", status=Status.VERIFIED, crowd_level="Busy")

        for order in ([pending, verified], [verified, pending]):
            markers = project_markers(order)
            assert len(markers) == 1
            assert markers[0].id == "v"
            assert markers[0].status == Status.VERIFIED

    def test_same_spot_different_names_kept(self):
        markers = project_markers([make_sighting(name="A", id="a"), make_sighting(name="B", id="b")])
        assert [m.name for m in markers] == ["A", "B"]

    def test_priority_order(self):
        sightings = [
            make_sighting(name="light", crowd_level="Light", id="1"),
            make_sighting(name="none", crowd_level=None, id="2"),
            make_sighting(name="busy", crowd_level="Busy", id="3"),
            make_sighting(name="mod", crowd_level="Moderate", id="4"),
            make_sighting(name="vendor", status=Status.VERIFIED, verified_by=Role.VENDOR, crowd_level=None, id="5"),
        ]

        markers = project_markers(sightings)

        assert [m.kind for m in markers] == ["vendor", "Busy", "Moderate", "Light", "unknown"]
        assert [m.color for m in markers] == ["blue", "red", "yellow", "green", "gray"]
        assert [m.priority for m in markers] == [0, 1, 2, 3, 4]

    def test_pending_vendor_is_not_vendor_kind(self):
        s = make_sighting(verified_by=Role.VENDOR, crowd_level="Busy")
        assert marker_kind(s) == "Busy"

    def test_projection_is_deterministic(self):
        sightings = [make_sighting(name=n, id=n, lat=BASE_LAT + i * 0.01) for i, n in enumerate("CAB")]
        assert project_markers(sightings) == project_markers(list(reversed(sightings)))

    def test_description(self):
        s = make_sighting(status=Status.VERIFIED)
        assert marker_description(s) == "Mexican • Busy • Verification: Verified"
        assert marker_description(make_sighting(crowd_level=None)) == "Mexican • Verification: Pending"


class TestGeoJSON:
    def test_feature_collection_is_lon_lat(self):
        markers = project_markers([make_sighting(id="a")])

        fc = markers_to_geojson(markers)

        assert fc["type"] == "FeatureCollection"
        feature = fc["features"][0]
        assert feature["geometry"] == {"type": "Point", "coordinates": [BASE_LON, BASE_LAT]}
        assert feature["properties"]["status"] == "pending"
        assert feature["properties"]["color"] == "red"

    def test_empty(self):
        assert markers_to_geojson([]) == {"type": "FeatureCollection", "features": []}
