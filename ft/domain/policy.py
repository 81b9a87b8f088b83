import threading
from typing import Callable, Dict, Any, List, Optional, Union, TYPE_CHECKING

from ..core.errors import StoreError, PolicyReadError, ValidationError
from ..core.models import (
    VerificationPolicy, VerificationMode, VerificationMethod, VendorStatus
)
from ..utils.log import log_line

if TYPE_CHECKING:
    from ..adapters.store import DocumentStore

PolicyCallback = Callable[[VerificationPolicy], None]

ACCESS_FULL = "full"
ACCESS_REMINDER = "reminder"
ACCESS_BLOCKED = "blocked"

class VerificationPolicyProvider:
    """
    Live view of the featureFlags/vendorVerification document.

    Every read() goes to the store; nothing is cached between decisions so an
    admin toggle is seen by the very next submission. Subscribers are told
    whenever a read (or set_policy) observes a different value; a polling
    thread can be started for long-lived sessions.
    """

    def __init__(self, store: "DocumentStore"):
        self.store = store
        self._lock = threading.Lock()
        self._subscribers: List[PolicyCallback] = []
        self._last: Optional[VerificationPolicy] = None
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def read(self) -> VerificationPolicy:
        try:
            policy = VerificationPolicy.from_doc(self.store.read_flag())
        except (StoreError, PolicyReadError) as e:
            log_line(f"POLICY | flag unreadable, using blocking/both | err={e!r}", "WARN")
            policy = VerificationPolicy()
        self._observe(policy)
        return policy

    def set_policy(
        self,
        mode: Optional[Union[VerificationMode, str]] = None,
        method: Optional[Union[VerificationMethod, str]] = None,
    ) -> VerificationPolicy:
        """
        Admin write. Unset axes keep their stored value. Store errors propagate
        and nothing is written.
        """
        try:
            new_mode = VerificationMode(mode) if mode is not None else None
            new_method = VerificationMethod(method) if method is not None else None
        except ValueError as e:
            raise ValidationError(str(e)) from e

        try:
            current = VerificationPolicy.from_doc(self.store.read_flag())
        except PolicyReadError as e:
            # malformed flag: this write replaces it
            log_line(f"POLICY | stored flag malformed, overwriting | err={e!r}", "WARN")
            current = VerificationPolicy()
        policy = VerificationPolicy(
            mode=new_mode or current.mode,
            method=new_method or current.method,
        )
        self.store.write_flag(policy.to_doc())
        log_line(f"POLICY | set mode={policy.mode.value} method={policy.method.value}")
        self._observe(policy)
        return policy

    def subscribe(self, callback: PolicyCallback, emit_current: bool = True) -> Callable[[], None]:
        """Register for policy changes. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)
        if emit_current:
            if self._last is None:
                # first observation notifies every subscriber, this one included
                self.read()
            else:
                callback(self._last)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return _unsubscribe

    def _observe(self, policy: VerificationPolicy) -> None:
        with self._lock:
            changed = policy != self._last
            self._last = policy
            subscribers = list(self._subscribers) if changed else []
        for cb in subscribers:
            try:
                cb(policy)
            except Exception as e:
                log_line(f"POLICY | subscriber failed | err={e!r}", "ERROR")

    def start_polling(self, interval_s: float = 30.0) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop = threading.Event()
        stop = self._stop

        def _run() -> None:
            while not stop.wait(interval_s):
                try:
                    self.read()
                except Exception as e:
                    # keep polling
                    log_line(f"POLICY | poll failed | err={e!r}", "ERROR")

        self._thread = threading.Thread(target=_run, name="policy-poll", daemon=True)
        self._thread.start()

    def stop_polling(self) -> None:
        if self._stop:
            self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        self._thread = None
        self._stop = None

def vendor_status_of(profile: Optional[Dict[str, Any]]) -> Optional[VendorStatus]:
    if not profile:
        return None
    try:
        return VendorStatus(profile.get("verificationStatus"))
    except ValueError:
        return None

def is_vendor_trusted(profile: Optional[Dict[str, Any]]) -> bool:
    """Only an approved vendor profile is trusted; no profile means not trusted."""
    return vendor_status_of(profile) == VendorStatus.APPROVED

def vendor_access(policy: VerificationPolicy, trusted: bool) -> str:
    """
    Gate for vendor-facing surfaces (report, profile, discover):
    trusted vendors get full access; untrusted ones are blocked in blocking
    mode and only reminded in non-blocking mode.
    """
    if trusted:
        return ACCESS_FULL
    if policy.mode == VerificationMode.BLOCKING:
        return ACCESS_BLOCKED
    return ACCESS_REMINDER
