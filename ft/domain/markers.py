from typing import Dict, Any, Iterable, List, Tuple

from ..core import constants as C
from ..core.models import Sighting, Marker, Role, Status

def marker_kind(s: Sighting) -> str:
    if s.is_verified and s.verified_by == Role.VENDOR:
        return C.MARKER_VENDOR
    if s.crowd_level in (C.MARKER_BUSY, C.MARKER_MODERATE, C.MARKER_LIGHT):
        return s.crowd_level
    return C.MARKER_UNKNOWN

def marker_description(s: Sighting) -> str:
    label = "Verified" if s.is_verified else "Pending"
    parts = [p for p in (s.cuisine_type, s.crowd_level) if p]
    return " • ".join(parts + [f"Verification: {label}"])

def project_markers(sightings: Iterable[Sighting]) -> List[Marker]:
    """
    Map-visible markers:
    - drop sightings without numeric coordinates
    - one marker per (name, lat, lon), a verified sighting wins the slot
    - ordered by display priority, then name
    """
    grouped: Dict[Tuple[str, float, float], Sighting] = {}
    for s in sightings:
        if not s.location.has_coords:
            continue
        key = (s.food_truck_name, s.location.latitude, s.location.longitude)
        held = grouped.get(key)
        if held is None or (s.is_verified and not held.is_verified):
            grouped[key] = s

    markers = []
    for s in grouped.values():
        kind = marker_kind(s)
        markers.append(Marker(
            id=s.id,
            name=s.food_truck_name,
            latitude=s.location.latitude,
            longitude=s.location.longitude,
            status=s.status,
            kind=kind,
            color=C.MARKER_COLORS[kind],
            priority=C.MARKER_PRIORITY.index(kind),
            description=marker_description(s),
        ))
    markers.sort(key=lambda m: (m.priority, m.name, m.id or ""))
    return markers

def markers_to_geojson(markers: Iterable[Marker]) -> Dict[str, Any]:
    """FeatureCollection for map clients (GeoJSON is [lon, lat])."""
    features = []
    for m in markers:
        features.append({
            "type": "Feature",
            "properties": {
                "id": m.id,
                "name": m.name,
                "status": m.status.value if isinstance(m.status, Status) else str(m.status),
                "kind": m.kind,
                "color": m.color,
                "priority": m.priority,
                "description": m.description,
            },
            "geometry": {
                "type": "Point",
                "coordinates": [m.longitude, m.latitude],
            },
        })
    return {"type": "FeatureCollection", "features": features}
