from datetime import datetime, timedelta
from typing import List, Iterable, TYPE_CHECKING

from ..core.constants import PROXIMITY_RADIUS_M, SIMILARITY_WINDOW_MIN
from ..core.models import Sighting
from ..utils.time import parse_timestamp
from .geo import haversine_m

if TYPE_CHECKING:
    from ..adapters.store import DocumentStore

def find_name_matches(store: "DocumentStore", truck_name: str) -> List[Sighting]:
    """All sightings whose foodTruckName equals truck_name exactly (case-sensitive)."""
    return store.find_by_name(truck_name)

def has_verified(candidates: Iterable[Sighting]) -> bool:
    return any(s.is_verified for s in candidates)

def find_similar(
    candidates: Iterable[Sighting],
    lat: float,
    lon: float,
    now: datetime,
    window: timedelta = timedelta(minutes=SIMILARITY_WINDOW_MIN),
    radius_m: float = PROXIMITY_RADIUS_M,
) -> List[Sighting]:
    """
    Narrow name matches to the same live sighting:
    reported no earlier than `now - window`, and strictly closer than `radius_m`.
    Sightings with unparseable timestamps or no coordinates never match.
    """
    oldest = now - window
    out = []
    for s in candidates:
        ts = parse_timestamp(s.timestamp)
        if ts is None or ts < oldest:
            continue
        if not s.location.has_coords:
            continue
        dist = haversine_m(lat, lon, s.location.latitude, s.location.longitude)
        if dist < radius_m:
            out.append(s)
    return out

def find_for_delete(store: "DocumentStore", truck_name: str) -> List[Sighting]:
    """
    Admin bulk-delete lookup. Exact name first; only if that finds nothing,
    fall back to a case-insensitive scan of every sighting.
    Verification matching must keep using find_name_matches.
    """
    name = (truck_name or "").strip()
    if not name:
        return []
    exact = store.find_by_name(name)
    if exact:
        return exact
    folded = name.casefold()
    return [s for s in store.all_sightings() if s.food_truck_name.strip().casefold() == folded]
