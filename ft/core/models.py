import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Union

from .errors import PolicyReadError

class Status(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"

class Role(str, Enum):
    USER = "user"
    VENDOR = "vendor"

class CrowdLevel(str, Enum):
    LIGHT = "Light"
    MODERATE = "Moderate"
    BUSY = "Busy"

class InventoryLevel(str, Enum):
    PLENTY = "Plenty"
    RUNNING_LOW = "Running Low"
    ALMOST_OUT = "Almost Out"

class VerificationMode(str, Enum):
    BLOCKING = "blocking"
    NON_BLOCKING = "non-blocking"

class VerificationMethod(str, Enum):
    PHOTO = "photo"
    COMMUNITY = "community"
    BOTH = "both"

class VendorStatus(str, Enum):
    APPROVED = "approved"
    PENDING_PHOTO = "pending_photo"
    REJECTED = "rejected"
    NEEDS_PHOTO = "needs_photo"

class Outcome(str, Enum):
    ALREADY_VERIFIED = "already_verified"
    VERIFIED = "verified"
    PENDING = "pending"
    AWAITING_APPROVAL = "awaiting_approval"  # quorum reached, but method=photo
    INVALID = "invalid"

def is_coordinate(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None

@dataclass
class Location:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: str = ""

    @property
    def has_coords(self) -> bool:
        return is_coordinate(self.latitude) and is_coordinate(self.longitude)

    @classmethod
    def from_doc(cls, doc: Any) -> "Location":
        if not isinstance(doc, dict):
            return cls()
        lat = doc.get("latitude")
        lon = doc.get("longitude")
        return cls(
            latitude=lat if is_coordinate(lat) else None,
            longitude=lon if is_coordinate(lon) else None,
            address=str(doc.get("address") or ""),
        )

    def to_doc(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}

@dataclass
class Sighting:
    food_truck_name: str
    cuisine_type: str = ""
    location: Location = field(default_factory=Location)
    timestamp: Optional[str] = None
    status: Status = Status.PENDING
    verified_by: Role = Role.USER
    crowd_level: Optional[str] = None
    inventory_level: Optional[str] = None
    additional_notes: str = ""
    favorite_items: List[str] = field(default_factory=list)
    verified_at: Optional[str] = None
    reporter_id: Optional[str] = None
    reporter_email: Optional[str] = None
    confirmation_count: int = 1
    id: Optional[str] = None
    # store revision marker (e.g. Firestore updateTime); never written to the document
    revision: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.status == Status.VERIFIED

    @classmethod
    def from_doc(cls, doc_id: Optional[str], doc: Dict[str, Any], revision: Optional[str] = None) -> "Sighting":
        """Lenient: unknown status reads as pending, unknown role as user, bad coords as None."""
        doc = doc or {}
        try:
            status = Status(doc.get("status"))
        except ValueError:
            status = Status.PENDING
        try:
            role = Role(doc.get("verifiedBy"))
        except ValueError:
            role = Role.USER
        items = doc.get("favoriteItems")
        try:
            count = int(doc.get("confirmationCount") or 1)
        except (TypeError, ValueError):
            count = 1
        return cls(
            id=doc_id,
            food_truck_name=str(doc.get("foodTruckName") or ""),
            cuisine_type=str(doc.get("cuisineType") or ""),
            crowd_level=_opt_str(doc.get("crowdLevel")),
            inventory_level=_opt_str(doc.get("inventoryLevel")),
            additional_notes=str(doc.get("additionalNotes") or ""),
            favorite_items=[str(i) for i in items] if isinstance(items, list) else [],
            location=Location.from_doc(doc.get("location")),
            timestamp=doc.get("timestamp"),
            status=status,
            verified_at=doc.get("verifiedAt"),
            reporter_id=_opt_str(doc.get("reporterId")),
            reporter_email=_opt_str(doc.get("reporterEmail")),
            verified_by=role,
            confirmation_count=count,
            revision=revision,
        )

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "foodTruckName": self.food_truck_name,
            "cuisineType": self.cuisine_type,
            "additionalNotes": self.additional_notes,
            "location": self.location.to_doc(),
            "timestamp": self.timestamp,
            "status": self.status.value,
            "verifiedBy": self.verified_by.value,
            "confirmationCount": self.confirmation_count,
        }
        optional = {
            "crowdLevel": self.crowd_level,
            "inventoryLevel": self.inventory_level,
            "verifiedAt": self.verified_at,
            "reporterId": self.reporter_id,
            "reporterEmail": self.reporter_email,
        }
        doc.update({k: v for k, v in optional.items() if v is not None})
        if self.favorite_items:
            doc["favoriteItems"] = list(self.favorite_items)
        return doc

@dataclass
class SightingDraft:
    """What a reporter submits. Validated by domain.validate before anything is written."""
    food_truck_name: str
    cuisine_type: str
    latitude: Optional[float]
    longitude: Optional[float]
    crowd_level: Optional[str] = None
    inventory_level: Optional[str] = None
    additional_notes: str = ""
    favorite_items: List[str] = field(default_factory=list)
    address: str = ""
    role: Role = Role.USER
    reporter_id: Optional[str] = None
    reporter_email: Optional[str] = None

# --- Reporter identity -----------------------------------------------------

@dataclass(frozen=True)
class Authenticated:
    key: str

@dataclass(frozen=True)
class Anonymous:
    key: str

Identity = Union[Authenticated, Anonymous]

def reporter_identity(s: Sighting) -> Identity:
    """
    Dedup key for distinct-reporter counting.
    reporterId wins over reporterEmail; with neither the report stands alone
    as an Anonymous identity tied to its own document.
    """
    key = _opt_str(s.reporter_id) or _opt_str(s.reporter_email)
    if key:
        return Authenticated(key)
    return Anonymous(s.id or f"anon-{uuid.uuid4().hex}")

# --- Policy ---------------------------------------------------------------

@dataclass(frozen=True)
class VerificationPolicy:
    mode: VerificationMode = VerificationMode.BLOCKING
    method: VerificationMethod = VerificationMethod.BOTH

    @property
    def allows_community(self) -> bool:
        return self.method in (VerificationMethod.COMMUNITY, VerificationMethod.BOTH)

    @property
    def allows_photo(self) -> bool:
        return self.method in (VerificationMethod.PHOTO, VerificationMethod.BOTH)

    @classmethod
    def from_doc(cls, doc: Optional[Dict[str, Any]]) -> "VerificationPolicy":
        """Missing axes take the default; present-but-unknown values raise PolicyReadError."""
        if doc is None:
            return cls()
        if not isinstance(doc, dict):
            raise PolicyReadError(f"flag document is not a map: {type(doc).__name__}")
        try:
            mode = VerificationMode(doc.get("mode") or VerificationMode.BLOCKING.value)
            method = VerificationMethod(doc.get("method") or VerificationMethod.BOTH.value)
        except ValueError as e:
            raise PolicyReadError(str(e)) from e
        return cls(mode=mode, method=method)

    def to_doc(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "method": self.method.value}

# --- Results --------------------------------------------------------------

@dataclass
class SubmitResult:
    outcome: Outcome
    sighting_id: Optional[str] = None
    unique_reporters: int = 0
    needed: int = 0
    reason: Optional[str] = None
    promoted_ids: List[str] = field(default_factory=list)
    message: str = ""

@dataclass
class SweepResult:
    scanned: int = 0
    deleted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

@dataclass
class Marker:
    id: Optional[str]
    name: str
    latitude: float
    longitude: float
    status: Status
    kind: str
    color: str
    priority: int
    description: str = ""

@dataclass
class TruckSummary:
    name: str
    popular_items: List[str] = field(default_factory=list)
    verified_count: int = 0
    report_count: int = 0
    last_report_min: Optional[int] = None
    latest_notes: str = ""
