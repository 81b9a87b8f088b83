#!/usr/bin/env python3
"""
Script to check the consistency of the sightings store.
Loads every sighting through the configured store and reports:
* Coordinate validity: latitude/longitude must be numeric and within valid
  ranges (-90 <= lat <= 90, -180 <= lon <= 180). Such sightings never show
  on the map.
* Required fields: foodTruckName, cuisineType, timestamp; crowdLevel for
  user reports. cuisineType outside the catalog is reported too.
* Timestamps that cannot be parsed (the retention sweep never removes them).
* Status consistency: verified without verifiedAt, unknown status values.
Each issue is printed as "<issue>\t<sighting id>". Exits non-zero if any
issue is found.
Usage:
    python tools/check_data.py --config config.json
"""
import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ft.core.config import load_config
from ft.core.constants import CUISINE_TYPES
from ft.core.models import is_coordinate
from ft.utils.time import parse_timestamp

def check_sightings(docs: Dict[str, Dict[str, Any]]) -> List[Tuple[str, str]]:
    errors: List[Tuple[str, str]] = []
    for sid, doc in docs.items():
        loc = doc.get("location") or {}
        lat = loc.get("latitude") if isinstance(loc, dict) else None
        lon = loc.get("longitude") if isinstance(loc, dict) else None
        if not (is_coordinate(lat) and is_coordinate(lon)):
            errors.append(("invalid_coordinates", sid))
        elif not (-90 <= lat <= 90 and -180 <= lon <= 180):
            errors.append(("out_of_bounds_coordinates", sid))

        for field in ("foodTruckName", "cuisineType", "timestamp"):
            if not doc.get(field):
                errors.append((f"missing_{field}", sid))
        if doc.get("cuisineType") and doc.get("cuisineType") not in CUISINE_TYPES:
            errors.append(("unknown_cuisineType", sid))
        if doc.get("verifiedBy") != "vendor" and not doc.get("crowdLevel"):
            errors.append(("missing_crowdLevel", sid))

        if doc.get("timestamp") and parse_timestamp(doc.get("timestamp")) is None:
            errors.append(("unparseable_timestamp", sid))

        status = doc.get("status")
        if status not in ("pending", "verified"):
            errors.append(("unknown_status", sid))
        elif status == "verified" and not doc.get("verifiedAt"):
            errors.append(("verified_without_verifiedAt", sid))
    return errors

def main() -> int:
    parser = argparse.ArgumentParser(description="Validate the sightings store")
    parser.add_argument("--config", default="config.json")
    args = parser.parse_args()
    cfg = load_config(Path(args.config))

    from ft.adapters.store import build_store
    # raw documents; Sighting.from_doc() would normalize away bad status values
    errors = check_sightings(build_store(cfg).raw_sightings())
    if errors:
        for issue, sid in errors:
            print(f"{issue}\t{sid}")
        print(f"\nFound {len(errors)} issues")
        return 1
    print("No issues detected")
    return 0

if __name__ == "__main__":
    sys.exit(main())
