import copy
import hashlib
import json
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterator, Union

from filelock import FileLock, Timeout

from ..core import constants as C
from ..core.errors import StoreError
from ..core.models import Sighting, Status
from ..utils.log import log_line

class DocumentStore(ABC):
    """
    Logical collections used by the pipeline:
    sightings/{id}, featureFlags/vendorVerification, vendors/{vendorKey}.
    Every method may raise StoreError when the backend is unavailable.
    """

    @abstractmethod
    def add_sighting(self, sighting: Sighting) -> str:
        """Insert a new sighting, return its generated id."""

    @abstractmethod
    def get_sighting(self, sighting_id: str) -> Optional[Sighting]:
        ...

    @abstractmethod
    def find_by_name(self, truck_name: str) -> List[Sighting]:
        """Exact, case-sensitive foodTruckName match."""

    @abstractmethod
    def all_sightings(self) -> List[Sighting]:
        ...

    @abstractmethod
    def raw_sightings(self) -> Dict[str, Dict[str, Any]]:
        """Every sighting document as stored, keyed by id, without normalization."""

    @abstractmethod
    def promote(self, sighting_ids: List[str], verified_at: str) -> List[str]:
        """
        Atomically set status=verified (+ verifiedAt) on every listed sighting
        that is still pending. Already-verified sightings are left untouched,
        vanished ids are skipped. Returns the ids that changed. Either every
        change lands or none does.
        """

    @abstractmethod
    def delete_sighting(self, sighting_id: str, expected: Optional[Sighting] = None) -> bool:
        """
        Delete one sighting. With `expected`, refuse (return False) if the
        document changed since it was read. False also when it is already gone.
        """

    @abstractmethod
    def read_flag(self) -> Optional[Dict[str, Any]]:
        """The featureFlags/vendorVerification document, or None if absent."""

    @abstractmethod
    def write_flag(self, doc: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_vendor(self, vendor_key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def put_vendor(self, vendor_key: str, doc: Dict[str, Any]) -> None:
        ...

def doc_revision(doc: Dict[str, Any]) -> str:
    """Content hash used as the revision of stores without server-side versions."""
    raw = json.dumps(doc, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]

def _empty_state() -> Dict[str, Dict[str, Any]]:
    return {C.SIGHTINGS: {}, C.FEATURE_FLAGS: {}, C.VENDORS: {}}

class MemoryStore(DocumentStore):
    """In-process store. All mutations go through _mutate() so subclasses only persist."""

    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self._lock = threading.RLock()
        self._state = _empty_state()
        if state:
            for col, docs in state.items():
                if isinstance(docs, dict):
                    self._state[col] = copy.deepcopy(docs)

    # --- persistence hooks ---

    def _persist(self) -> None:
        pass

    def _refresh(self) -> None:
        pass

    @contextmanager
    def _mutate(self) -> Iterator[Dict[str, Dict[str, Any]]]:
        with self._lock:
            self._refresh()
            snapshot = copy.deepcopy(self._state)
            try:
                yield self._state
                self._persist()
            except Exception as e:
                self._state = snapshot
                if isinstance(e, StoreError):
                    raise
                raise StoreError(f"write failed: {e!r}") from e

    def _sightings(self) -> Dict[str, Any]:
        self._refresh()
        return self._state[C.SIGHTINGS]

    def _load(self, sighting_id: str, doc: Dict[str, Any]) -> Sighting:
        return Sighting.from_doc(sighting_id, copy.deepcopy(doc), revision=doc_revision(doc))

    # --- sightings ---

    def add_sighting(self, sighting: Sighting) -> str:
        sighting_id = uuid.uuid4().hex[:20]
        with self._mutate() as state:
            state[C.SIGHTINGS][sighting_id] = sighting.to_doc()
        return sighting_id

    def get_sighting(self, sighting_id: str) -> Optional[Sighting]:
        with self._lock:
            doc = self._sightings().get(sighting_id)
            return self._load(sighting_id, doc) if doc is not None else None

    def find_by_name(self, truck_name: str) -> List[Sighting]:
        with self._lock:
            return [
                self._load(sid, doc) for sid, doc in self._sightings().items()
                if doc.get("foodTruckName") == truck_name
            ]

    def all_sightings(self) -> List[Sighting]:
        with self._lock:
            return [self._load(sid, doc) for sid, doc in self._sightings().items()]

    def raw_sightings(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._sightings())

    def promote(self, sighting_ids: List[str], verified_at: str) -> List[str]:
        changed = []
        with self._mutate() as state:
            docs = state[C.SIGHTINGS]
            for sid in dict.fromkeys(sighting_ids):
                doc = docs.get(sid)
                if doc is None:
                    log_line(f"PROMOTE | skipped missing id={sid}", "WARN")
                    continue
                if doc.get("status") == Status.VERIFIED.value:
                    continue
                doc["status"] = Status.VERIFIED.value
                doc["verifiedAt"] = verified_at
                changed.append(sid)
        return changed

    def delete_sighting(self, sighting_id: str, expected: Optional[Sighting] = None) -> bool:
        with self._mutate() as state:
            docs = state[C.SIGHTINGS]
            doc = docs.get(sighting_id)
            if doc is None:
                return False
            if expected is not None and expected.revision and expected.revision != doc_revision(doc):
                return False
            del docs[sighting_id]
        return True

    # --- flags / vendors ---

    def read_flag(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._refresh()
            doc = self._state[C.FEATURE_FLAGS].get(C.VENDOR_VERIFICATION_FLAG)
            return copy.deepcopy(doc) if doc is not None else None

    def write_flag(self, doc: Dict[str, Any]) -> None:
        with self._mutate() as state:
            state[C.FEATURE_FLAGS][C.VENDOR_VERIFICATION_FLAG] = dict(doc)

    def get_vendor(self, vendor_key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._refresh()
            doc = self._state[C.VENDORS].get(vendor_key)
            return copy.deepcopy(doc) if doc is not None else None

    def put_vendor(self, vendor_key: str, doc: Dict[str, Any]) -> None:
        with self._mutate() as state:
            state[C.VENDORS][vendor_key] = dict(doc)

class JsonFileStore(MemoryStore):
    """
    Whole store in one JSON file.
    Writes are atomic (unique temp file + os.replace); a failed write rolls the
    in-memory state back. The file is re-read when another process changed it.
    Every mutation holds <file>.lock from the re-read through os.replace, so
    processes sharing the file (sweeper, tools, submitters) never save over
    each other's changes.
    """

    def __init__(self, path: Union[str, Path], lock_timeout_s: float = C.JSON_LOCK_TIMEOUT_S):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._signature: Optional[tuple] = None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file_lock = FileLock(str(self.lock_path), timeout=lock_timeout_s)
        super().__init__()
        with self._lock:
            self._refresh()

    @contextmanager
    def _mutate(self) -> Iterator[Dict[str, Dict[str, Any]]]:
        with self._lock:
            try:
                self._file_lock.acquire()
            except Timeout as e:
                raise StoreError(f"{self.lock_path} held by another process") from e
            try:
                with super()._mutate() as state:
                    yield state
            finally:
                self._file_lock.release()

    def _refresh(self) -> None:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StoreError(f"cannot stat {self.path}: {e!r}") from e
        # os.replace gives every write a new inode, so this changes even within one mtime tick
        signature = (st.st_mtime_ns, st.st_size, st.st_ino)
        if signature == self._signature:
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            # refuse to continue: the next write would clobber whatever is in there
            raise StoreError(f"cannot read {self.path}: {e!r}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} is not a JSON object")
        state = _empty_state()
        for col in state:
            docs = data.get(col)
            if isinstance(docs, dict):
                state[col] = docs
        self._state = state
        self._signature = signature

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(self._state, ensure_ascii=False, indent=2) + "\n"

        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        finally:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
        st = self.path.stat()
        self._signature = (st.st_mtime_ns, st.st_size, st.st_ino)

def build_store(cfg: Dict[str, Any]) -> DocumentStore:
    kind = str(cfg.get("store", "json") or "json").lower()
    if kind == "memory":
        return MemoryStore()
    if kind == "firestore":
        from .firestore_api import FirestoreStore
        return FirestoreStore(cfg)
    if kind == "json":
        return JsonFileStore(Path(cfg.get("data_path") or "sightings.json"))
    raise ValueError(f"unknown store kind: {kind!r}")
