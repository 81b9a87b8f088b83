import math
from datetime import datetime, timezone, timedelta

import pytest

from ft.adapters.store import MemoryStore
from ft.core.models import SightingDraft, Sighting, Location, Status, Role
from ft.core.pipeline import ReportPipeline
from ft.utils.time import to_iso

BASE_LAT = 52.5200
BASE_LON = 13.4050
T0 = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

def north_of(lat: float, meters: float) -> float:
    """Latitude `meters` due north (haversine along a meridian is exact)."""
    return lat + math.degrees(meters / 6371000.0)

def make_draft(reporter_id=None, name="Taco Loco", lat=BASE_LAT, lon=BASE_LON, **kw) -> SightingDraft:
    defaults = dict(
        food_truck_name=name,
        cuisine_type="Mexican",
        crowd_level="Busy",
        latitude=lat,
        longitude=lon,
        reporter_id=reporter_id,
    )
    defaults.update(kw)
    return SightingDraft(**defaults)

def make_sighting(name="Taco Loco", ts=T0, status=Status.PENDING, lat=BASE_LAT, lon=BASE_LON,
                  reporter_id="r1", **kw) -> Sighting:
    return Sighting(
        food_truck_name=name,
        cuisine_type=kw.pop("cuisine_type", "Mexican"),
        crowd_level=kw.pop("crowd_level", "Busy"),
        location=Location(latitude=lat, longitude=lon, address=kw.pop("address", "")),
        timestamp=to_iso(ts) if isinstance(ts, datetime) else ts,
        status=status,
        verified_at=to_iso(ts) if status == Status.VERIFIED and isinstance(ts, datetime) else None,
        reporter_id=reporter_id,
        verified_by=kw.pop("verified_by", Role.USER),
        **kw,
    )

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def pipeline(store):
    return ReportPipeline(store, clock=lambda: T0)

@pytest.fixture
def minutes():
    return lambda n: T0 + timedelta(minutes=n)
