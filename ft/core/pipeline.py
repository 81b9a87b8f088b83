from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Callable

from .constants import QUORUM_THRESHOLD, PROXIMITY_RADIUS_M, SIMILARITY_WINDOW_MIN, RETENTION_HOURS
from .models import (
    Sighting, SightingDraft, Location, Status, Role, Outcome,
    SubmitResult, SweepResult, Marker, TruckSummary, VerificationPolicy,
    reporter_identity,
)
from ..adapters.store import DocumentStore
from ..domain.validate import validate_draft
from ..domain.similarity import find_name_matches, find_similar, has_verified
from ..domain.retention import sweep_expired
from ..domain.policy import VerificationPolicyProvider
from ..domain.markers import project_markers
from ..domain.summary import summarize_truck
from ..utils.log import log_event
from ..utils.time import now_utc, to_iso

class ReportPipeline:
    """
    Sighting verification pipeline.

    One submission runs, in this order:
      validate -> already-verified check -> write report -> count distinct
      reporters among similar live sightings -> promote (policy permitting).
    Promotion is delegated to the store as a pending-only, all-or-nothing
    update, so two sessions reaching quorum at once both converge on verified.
    """

    def __init__(
        self,
        store: DocumentStore,
        policy: Optional[VerificationPolicyProvider] = None,
        cfg: Optional[Dict[str, Any]] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        cfg = cfg or {}
        self.store = store
        self.policy = policy or VerificationPolicyProvider(store)
        self.clock = clock
        self.quorum = int(cfg.get("quorum_threshold", QUORUM_THRESHOLD))
        self.radius_m = float(cfg.get("proximity_radius_m", PROXIMITY_RADIUS_M))
        self.window = timedelta(minutes=float(cfg.get("similarity_window_min", SIMILARITY_WINDOW_MIN)))
        self.retention = timedelta(hours=float(cfg.get("retention_hours", RETENTION_HOURS)))

    # --- submit ---

    def submit_report(self, draft: SightingDraft, now: Optional[datetime] = None) -> SubmitResult:
        """Store errors propagate (StoreError); nothing is retried."""
        now = now or self.clock()
        name = (draft.food_truck_name or "").strip()

        reason = validate_draft(draft)
        if reason:
            log_event("report_invalid", name=name or "-", reason=reason)
            return SubmitResult(outcome=Outcome.INVALID, reason=reason, message=_invalid_message(reason))

        matches = find_name_matches(self.store, name)
        if has_verified(matches):
            log_event("report_already_verified", name=name)
            return SubmitResult(
                outcome=Outcome.ALREADY_VERIFIED,
                message=f"{name} is already verified on the map.",
            )

        sighting = self._build_sighting(draft, name, now)
        sighting.id = self.store.add_sighting(sighting)
        log_event("report_saved", id=sighting.id, name=name, role=sighting.verified_by.value,
                  status=sighting.status.value)

        if sighting.is_verified:
            return SubmitResult(
                outcome=Outcome.VERIFIED,
                sighting_id=sighting.id,
                unique_reporters=1,
                promoted_ids=[sighting.id],
                message=f"{name} has been added as a verified truck on the map.",
            )

        similar = find_similar(
            matches, sighting.location.latitude, sighting.location.longitude,
            now, window=self.window, radius_m=self.radius_m,
        )
        cluster = similar + [sighting]
        count = distinct_reporters(cluster)

        if count < self.quorum:
            needed = self.quorum - count
            log_event("report_pending", id=sighting.id, name=name, reporters=count, needed=needed)
            plural = "s" if needed > 1 else ""
            return SubmitResult(
                outcome=Outcome.PENDING,
                sighting_id=sighting.id,
                unique_reporters=count,
                needed=needed,
                message=f"Food truck reported successfully. Need {needed} more unique confirmation{plural} to verify.",
            )

        policy = self.policy.read()
        if not policy.allows_community:
            log_event("report_quorum_held", id=sighting.id, name=name, reporters=count,
                      method=policy.method.value)
            return SubmitResult(
                outcome=Outcome.AWAITING_APPROVAL,
                sighting_id=sighting.id,
                unique_reporters=count,
                message=f"Report submitted. {name} is pending vendor/photo approval.",
            )

        promoted = self.store.promote([s.id for s in cluster], to_iso(now))
        log_event("report_promoted", name=name, reporters=count, promoted=len(promoted))
        return SubmitResult(
            outcome=Outcome.VERIFIED,
            sighting_id=sighting.id,
            unique_reporters=count,
            promoted_ids=promoted,
            message=f"Thanks for confirming! {name} is now verified on the map.",
        )

    def _build_sighting(self, draft: SightingDraft, name: str, now: datetime) -> Sighting:
        is_vendor = draft.role == Role.VENDOR
        ts = to_iso(now)
        return Sighting(
            food_truck_name=name,
            cuisine_type=draft.cuisine_type.strip(),
            crowd_level=(draft.crowd_level or "").strip() or None,
            inventory_level=(draft.inventory_level or "").strip() or None,
            additional_notes=(draft.additional_notes or "").strip(),
            favorite_items=[str(i).strip() for i in draft.favorite_items if str(i or "").strip()],
            location=Location(latitude=draft.latitude, longitude=draft.longitude, address=draft.address or ""),
            timestamp=ts,
            status=Status.VERIFIED if is_vendor else Status.PENDING,
            verified_at=ts if is_vendor else None,
            reporter_id=(draft.reporter_id or "").strip() or None,
            reporter_email=(draft.reporter_email or "").strip() or None,
            verified_by=Role.VENDOR if is_vendor else Role.USER,
            confirmation_count=1,
        )

    # --- other operations ---

    def sweep_expired(self, now: Optional[datetime] = None) -> SweepResult:
        return sweep_expired(self.store, now or self.clock(), self.retention)

    def visible_markers(self, sightings: Optional[List[Sighting]] = None) -> List[Marker]:
        return project_markers(self.store.all_sightings() if sightings is None else sightings)

    def truck_summary(self, name: str, now: Optional[datetime] = None) -> TruckSummary:
        return summarize_truck(name, find_name_matches(self.store, name), now or self.clock())

    def read_policy(self) -> VerificationPolicy:
        return self.policy.read()

def distinct_reporters(sightings: List[Sighting]) -> int:
    return len({reporter_identity(s) for s in sightings})

_INVALID_MESSAGES = {
    "missing_truck_name": "Please enter the food truck name.",
    "missing_cuisine_type": "Please select a cuisine type.",
    "missing_crowd_level": "Please select crowd level.",
    "missing_location": "Location is required.",
}

def _invalid_message(reason: str) -> str:
    return _INVALID_MESSAGES.get(reason, f"Report rejected: {reason.replace('_', ' ')}.")
