from datetime import datetime, timedelta
from typing import Optional, TYPE_CHECKING

from ..core.constants import RETENTION_HOURS
from ..core.errors import StoreError
from ..core.models import SweepResult
from ..utils.log import log_line
from ..utils.time import now_utc, parse_timestamp

if TYPE_CHECKING:
    from ..adapters.store import DocumentStore

def retention_cutoff(now: datetime, max_age: timedelta = timedelta(hours=RETENTION_HOURS)) -> datetime:
    return now - max_age

def sweep_expired(
    store: "DocumentStore",
    now: Optional[datetime] = None,
    max_age: timedelta = timedelta(hours=RETENTION_HOURS),
) -> SweepResult:
    """
    Delete never-verified sightings older than the rolling cutoff.

    Best effort: one read of the collection, then one delete per expired
    sighting. A failed delete is logged and counted; the batch carries on.
    Verified sightings and sightings without a readable timestamp are kept.
    The read of the collection itself is not caught: if the store is down
    the whole sweep fails.
    """
    now = now or now_utc()
    cutoff = retention_cutoff(now, max_age)
    result = SweepResult()

    for s in store.all_sightings():
        result.scanned += 1
        if s.is_verified:
            continue
        ts = parse_timestamp(s.timestamp)
        if ts is None or ts >= cutoff:
            continue
        try:
            # pass the read copy so stores with preconditions skip late promotions
            if store.delete_sighting(s.id, expected=s):
                result.deleted += 1
        except StoreError as e:
            result.failed += 1
            result.errors.append(f"{s.id}: {e}")
            log_line(f"SWEEP | delete failed | id={s.id} | err={e!r}", "WARN")

    log_line(
        f"SWEEP | scanned={result.scanned} deleted={result.deleted} failed={result.failed} "
        f"cutoff={cutoff.isoformat(timespec='seconds')}"
    )
    return result
