from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from ..core.constants import POPULAR_ITEMS_LIMIT
from ..core.models import Sighting, TruckSummary
from ..utils.time import now_utc, parse_timestamp, minutes_since

def summarize_truck(
    name: str,
    sightings: Iterable[Sighting],
    now: Optional[datetime] = None,
    limit: int = POPULAR_ITEMS_LIMIT,
) -> TruckSummary:
    """
    Detail-sheet aggregate over every sighting of one truck (exact name):
    most reported favorite items, verified count, minutes since the latest
    report and the notes attached to it (older notes are used if it has none).
    """
    now = now or now_utc()
    summary = TruckSummary(name=name)
    freq: Counter = Counter()
    latest_ts = None
    latest_raw = None
    latest_notes_ts = None

    for s in sightings:
        if s.food_truck_name != name:
            continue
        summary.report_count += 1
        if s.is_verified:
            summary.verified_count += 1
        for item in s.favorite_items:
            key = str(item or "").strip()
            if key:
                freq[key] += 1

        raw = s.timestamp or s.verified_at
        ts = parse_timestamp(raw)
        if ts is None:
            continue
        if latest_ts is None or ts > latest_ts:
            latest_ts, latest_raw = ts, raw
        if s.additional_notes.strip() and (latest_notes_ts is None or ts > latest_notes_ts):
            latest_notes_ts = ts
            summary.latest_notes = s.additional_notes.strip()

    # most_common keeps first-seen order among ties
    summary.popular_items = [item for item, _ in freq.most_common(limit)]
    summary.last_report_min = minutes_since(latest_raw, now) if latest_raw is not None else None
    return summary
