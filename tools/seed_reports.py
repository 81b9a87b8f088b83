#!/usr/bin/env python3
"""
Testing aid: submit N reports of one truck from N distinct reporters at the
same spot, so the next real report exercises the quorum path.
Reporter ids carry a per-run suffix, so seeding again adds new reporters.
Usage:
    python tools/seed_reports.py "Taco Loco" 52.52 13.405 --count 2 --cuisine Mexican
"""
import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ft.adapters.store import build_store
from ft.core.config import load_config
from ft.core.models import SightingDraft
from ft.core.pipeline import ReportPipeline

def seed_drafts(name: str, lat: float, lon: float, count: int, cuisine: str = "Other",
                crowd: str = "Moderate", run_id: Optional[str] = None) -> List[SightingDraft]:
    run_id = run_id or str(int(time.time() * 1000))
    return [
        SightingDraft(
            food_truck_name=name,
            cuisine_type=cuisine,
            crowd_level=crowd,
            latitude=lat,
            longitude=lon,
            additional_notes=f"Test report from user {i}",
            reporter_id=f"test_user_{i}_{run_id}",
            reporter_email=f"testuser{i}_{run_id}@example.com",
        )
        for i in range(1, count + 1)
    ]

def main() -> int:
    parser = argparse.ArgumentParser(description="Seed test reports from distinct reporters")
    parser.add_argument("name")
    parser.add_argument("lat", type=float)
    parser.add_argument("lon", type=float)
    parser.add_argument("--count", type=int, default=2)
    parser.add_argument("--cuisine", default="Other")
    parser.add_argument("--crowd", default="Moderate", choices=["Light", "Moderate", "Busy"])
    parser.add_argument("--config", default="config.json")
    args = parser.parse_args()

    cfg = load_config(Path(args.config))
    pipeline = ReportPipeline(build_store(cfg), cfg=cfg)
    drafts = seed_drafts(args.name, args.lat, args.lon, args.count, args.cuisine, args.crowd)
    for i, draft in enumerate(drafts, start=1):
        res = pipeline.submit_report(draft)
        print(f"user {i}: {res.outcome.value} {res.message}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
