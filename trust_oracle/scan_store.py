# trust_oracle/scan_store.py
"""
Bounded in-memory ledger of scan results.

Results are kept in insertion order. Once the capacity is reached every append
evicts the oldest entry. State lives for the lifetime of the process only.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from trust_oracle.utils.addresses import normalize_address

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_RECENT_LIMIT = 50


def _utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ScanResult:
    contract_address: str
    score: int
    is_honeypot: bool
    is_mintable: bool
    owner_can_withdraw: bool
    has_certificate: bool = False
    scanned_at: str = field(default_factory=_utc_now_iso)
    block_number: Optional[int] = None
    deployer_address: Optional[str] = None

    def __post_init__(self):
        # frozen dataclass: bypass __setattr__ to clamp once at creation
        object.__setattr__(self, "score", max(0, min(100, int(self.score))))

    def to_dict(self) -> Dict:
        data = {
            "contract_address": self.contract_address,
            "score": self.score,
            "is_honeypot": self.is_honeypot,
            "is_mintable": self.is_mintable,
            "owner_can_withdraw": self.owner_can_withdraw,
            "has_sbt": self.has_certificate,
            "scanned_at": self.scanned_at,
        }
        if self.block_number is not None:
            data["block_number"] = self.block_number
        if self.deployer_address is not None:
            data["deployer"] = self.deployer_address
        return data


class ScanStore:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._scans = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._listeners: List[Callable[[ScanResult], None]] = []

    def __len__(self):
        with self._lock:
            return len(self._scans)

    def add_listener(self, callback: Callable[[ScanResult], None]):
        """Register a callback invoked after every append."""
        self._listeners.append(callback)

    def add_scan(self, result: ScanResult):
        # deque(maxlen) drops the oldest entry in the same append call
        with self._lock:
            self._scans.append(result)
        for callback in list(self._listeners):
            try:
                callback(result)
            except Exception as e:
                logger.warning(f"Scan listener failed for {result.contract_address}: {e}")

    def get_by_address(self, address: str) -> Optional[ScanResult]:
        """
        Return the earliest stored result for ``address`` (case-insensitive).

        The scan runs oldest to newest and stops at the first match, so a
        later rescan of the same contract does not shadow the first one.
        """
        target = normalize_address(address)
        if not target:
            return None
        with self._lock:
            for scan in self._scans:
                if normalize_address(scan.contract_address) == target:
                    return scan
        return None

    def get_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[ScanResult]:
        """Most recent first, at most ``limit`` entries."""
        if limit <= 0:
            return []
        with self._lock:
            snapshot = list(self._scans)
        return list(reversed(snapshot[-limit:]))

    def get_all(self) -> List[ScanResult]:
        with self._lock:
            return list(self._scans)

    def get_stats(self) -> Dict:
        scans = self.get_all()
        total = len(scans)
        certificates = sum(1 for s in scans if s.has_certificate)
        avg_score = sum(s.score for s in scans) / total if total else 0.0
        return {
            "total_scans": total,
            "total_sbts": certificates,
            "avg_score": round(avg_score, 1),
        }

    def health(self) -> Dict:
        return {"scans_stored": len(self)}
