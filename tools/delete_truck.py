#!/usr/bin/env python3
"""
Admin bulk delete of every sighting of one truck.
Exact name match first; falls back to a case-insensitive match only when the
exact name finds nothing. Dry run unless --yes is given.
Usage:
    python tools/delete_truck.py "Taco Loco" [--yes] [--config config.json]
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ft.adapters.store import build_store
from ft.core.config import load_config
from ft.core.errors import StoreError
from ft.domain.similarity import find_for_delete
from ft.utils.log import log_line

def main() -> int:
    parser = argparse.ArgumentParser(description="Delete all sightings of a truck by name")
    parser.add_argument("name")
    parser.add_argument("--config", default="config.json")
    parser.add_argument("--yes", action="store_true", help="actually delete (default: dry run)")
    args = parser.parse_args()

    store = build_store(load_config(Path(args.config)))
    targets = find_for_delete(store, args.name)
    print(f"Found {len(targets)} sightings for {args.name!r}")
    for s in targets:
        print(f"  {s.id}\t{s.food_truck_name}\t{s.status.value}\t{s.timestamp}")
    if not args.yes:
        print("Dry run. Re-run with --yes to delete.")
        return 0

    deleted = failed = 0
    for s in targets:
        try:
            if store.delete_sighting(s.id):
                deleted += 1
        except StoreError as e:
            failed += 1
            log_line(f"DELETE | failed id={s.id} | err={e!r}", "WARN")
    log_line(f"DELETE | name={args.name!r} deleted={deleted} failed={failed}")
    return 1 if failed else 0

if __name__ == "__main__":
    sys.exit(main())
