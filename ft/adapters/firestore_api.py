import requests
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple
from urllib.parse import quote

from ..core import constants as C
from ..core.errors import StoreError
from ..core.models import Sighting, Status
from ..utils.log import log_line
from ..utils.time import to_iso
from .store import DocumentStore

FIRESTORE_URL = "https://firestore.googleapis.com/v1"
PROMOTE_ATTEMPTS = 3

# Firestore error statuses meaning "the documents moved under us, re-read and retry"
_CONTENDED = {"FAILED_PRECONDITION", "NOT_FOUND", "ABORTED"}

# --- value codec (Firestore REST typed values) ---

def to_value(v: Any) -> Dict[str, Any]:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        return {"timestampValue": to_iso(v)}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [to_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": encode_fields(v)}}
    return {"stringValue": str(v)}

def from_value(val: Dict[str, Any]) -> Any:
    if "nullValue" in val:
        return None
    if "booleanValue" in val:
        return bool(val["booleanValue"])
    if "integerValue" in val:
        return int(val["integerValue"])
    if "doubleValue" in val:
        return float(val["doubleValue"])
    if "stringValue" in val:
        return val["stringValue"]
    if "timestampValue" in val:
        return val["timestampValue"]
    if "arrayValue" in val:
        return [from_value(x) for x in (val["arrayValue"] or {}).get("values", [])]
    if "mapValue" in val:
        return decode_fields((val["mapValue"] or {}).get("fields", {}))
    if "geoPointValue" in val:
        gp = val["geoPointValue"] or {}
        return {"latitude": gp.get("latitude"), "longitude": gp.get("longitude")}
    if "referenceValue" in val:
        return val["referenceValue"]
    return None

def encode_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k): to_value(v) for k, v in doc.items()}

def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: from_value(v) for k, v in (fields or {}).items()}

def _doc_id(name: str) -> str:
    return name.rsplit("/", 1)[-1]

def _error_status(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return ""
    if isinstance(body, list) and body:
        body = body[0]
    if not isinstance(body, dict):
        return ""
    return str((body.get("error") or {}).get("status") or "")

class FirestoreStore(DocumentStore):
    """
    DocumentStore over the Firestore REST API.

    cfg keys: firestore_project, firestore_database, access_token (OAuth bearer,
    e.g. from secrets.json), api_key, user_agent.
    Promotion is a single :commit whose writes carry the updateTime read
    just before, so a concurrent change makes the whole batch fail and it is
    retried from a fresh read instead of landing half-way.
    """

    def __init__(self, cfg: Dict[str, Any], session: Optional[requests.Session] = None):
        project = str(cfg.get("firestore_project", "") or "").strip()
        if not project:
            raise StoreError("firestore_project not configured")
        database = str(cfg.get("firestore_database", "(default)") or "(default)")
        self.cfg = cfg
        self.session = session or requests.Session()
        self.doc_root = f"projects/{project}/databases/{database}/documents"
        self.base = f"{FIRESTORE_URL}/{self.doc_root}"

    # --- http ---

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": str(self.cfg.get("user_agent", "FoodTruckSightings/0.3") or "FoodTruckSightings/0.3")}
        token = str(self.cfg.get("access_token", "") or "")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None,
                 json_body: Optional[Dict[str, Any]] = None) -> requests.Response:
        params = dict(params or {})
        api_key = str(self.cfg.get("api_key", "") or "")
        if api_key:
            params["key"] = api_key
        try:
            return self.session.request(
                method, url, headers=self._headers(), params=params or None,
                json=json_body, timeout=C.FIRESTORE_TIMEOUT_S,
            )
        except requests.RequestException as e:
            raise StoreError(f"{method} {url} failed: {e!r}") from e

    def _fail(self, r: requests.Response, what: str) -> StoreError:
        status = _error_status(r)
        return StoreError(f"{what} | http={r.status_code} status={status or '-'}")

    def _doc_url(self, collection: str, doc_id: str) -> str:
        return f"{self.base}/{collection}/{quote(doc_id, safe='@')}"

    def _get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        r = self._request("GET", self._doc_url(collection, doc_id))
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise self._fail(r, f"get {collection}/{doc_id}")
        return r.json()

    def _put_doc(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        r = self._request("PATCH", self._doc_url(collection, doc_id), json_body={"fields": encode_fields(doc)})
        if r.status_code != 200:
            raise self._fail(r, f"write {collection}/{doc_id}")

    @staticmethod
    def _to_sighting(raw: Dict[str, Any]) -> Sighting:
        return Sighting.from_doc(_doc_id(raw["name"]), decode_fields(raw.get("fields", {})),
                                 revision=raw.get("updateTime"))

    # --- sightings ---

    def add_sighting(self, sighting: Sighting) -> str:
        r = self._request("POST", f"{self.base}/{C.SIGHTINGS}", json_body={"fields": encode_fields(sighting.to_doc())})
        if r.status_code != 200:
            raise self._fail(r, "add sighting")
        return _doc_id(r.json()["name"])

    def get_sighting(self, sighting_id: str) -> Optional[Sighting]:
        raw = self._get_doc(C.SIGHTINGS, sighting_id)
        return self._to_sighting(raw) if raw else None

    def find_by_name(self, truck_name: str) -> List[Sighting]:
        body = {
            "structuredQuery": {
                "from": [{"collectionId": C.SIGHTINGS}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "foodTruckName"},
                        "op": "EQUAL",
                        "value": {"stringValue": truck_name},
                    }
                },
            }
        }
        r = self._request("POST", f"{self.base}:runQuery", json_body=body)
        if r.status_code != 200:
            raise self._fail(r, f"query name={truck_name!r}")
        return [self._to_sighting(row["document"]) for row in r.json() if row.get("document")]

    def _list_documents(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        token = None
        while True:
            params: Dict[str, Any] = {"pageSize": C.FIRESTORE_PAGE_SIZE}
            if token:
                params["pageToken"] = token
            r = self._request("GET", f"{self.base}/{C.SIGHTINGS}", params=params)
            if r.status_code != 200:
                raise self._fail(r, "list sightings")
            data = r.json() or {}
            out.extend(data.get("documents", []))
            token = data.get("nextPageToken")
            if not token:
                return out

    def all_sightings(self) -> List[Sighting]:
        return [self._to_sighting(d) for d in self._list_documents()]

    def raw_sightings(self) -> Dict[str, Dict[str, Any]]:
        return {_doc_id(d["name"]): decode_fields(d.get("fields", {})) for d in self._list_documents()}

    def _promotion_writes(self, sighting_ids: List[str], verified_at: str) -> Tuple[List[Dict[str, Any]], List[str]]:
        writes, ids = [], []
        for sid in dict.fromkeys(sighting_ids):
            raw = self._get_doc(C.SIGHTINGS, sid)
            if raw is None:
                log_line(f"PROMOTE | skipped missing id={sid}", "WARN")
                continue
            if decode_fields(raw.get("fields", {})).get("status") == Status.VERIFIED.value:
                continue
            writes.append({
                "update": {
                    "name": raw["name"],
                    "fields": encode_fields({"status": Status.VERIFIED.value, "verifiedAt": verified_at}),
                },
                "updateMask": {"fieldPaths": ["status", "verifiedAt"]},
                "currentDocument": {"updateTime": raw["updateTime"]},
            })
            ids.append(sid)
        return writes, ids

    def promote(self, sighting_ids: List[str], verified_at: str) -> List[str]:
        for attempt in range(1, PROMOTE_ATTEMPTS + 1):
            writes, ids = self._promotion_writes(sighting_ids, verified_at)
            if not writes:
                return []
            r = self._request("POST", f"{self.base}:commit", json_body={"writes": writes})
            if r.status_code == 200:
                return ids
            status = _error_status(r)
            if status in _CONTENDED or r.status_code in (404, 409):
                log_line(f"PROMOTE | contended commit, re-reading | attempt={attempt} status={status or r.status_code}", "WARN")
                continue
            raise self._fail(r, "promote commit")
        raise StoreError(f"promote gave up after {PROMOTE_ATTEMPTS} contended attempts")

    def delete_sighting(self, sighting_id: str, expected: Optional[Sighting] = None) -> bool:
        if expected is not None and expected.revision:
            params = {"currentDocument.updateTime": expected.revision}
        else:
            params = {"currentDocument.exists": "true"}
        r = self._request("DELETE", self._doc_url(C.SIGHTINGS, sighting_id), params=params)
        if r.status_code == 200:
            return True
        if r.status_code == 404 or _error_status(r) in ("NOT_FOUND", "FAILED_PRECONDITION"):
            return False
        raise self._fail(r, f"delete sighting {sighting_id}")

    # --- flags / vendors ---

    def read_flag(self) -> Optional[Dict[str, Any]]:
        raw = self._get_doc(C.FEATURE_FLAGS, C.VENDOR_VERIFICATION_FLAG)
        return decode_fields(raw.get("fields", {})) if raw else None

    def write_flag(self, doc: Dict[str, Any]) -> None:
        self._put_doc(C.FEATURE_FLAGS, C.VENDOR_VERIFICATION_FLAG, doc)

    def get_vendor(self, vendor_key: str) -> Optional[Dict[str, Any]]:
        raw = self._get_doc(C.VENDORS, vendor_key)
        return decode_fields(raw.get("fields", {})) if raw else None

    def put_vendor(self, vendor_key: str, doc: Dict[str, Any]) -> None:
        self._put_doc(C.VENDORS, vendor_key, doc)
