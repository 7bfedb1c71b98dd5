"""
models.py - Value objects shared by the enumerator, checker, orchestrator and reports.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

STATUS_ACTIVE = "active"
STATUS_QUARANTINED = "quarantined"

DEFAULT_BATCH_SIZE = 50
DEFAULT_HTTP_TIMEOUT = 15
DEFAULT_BROKEN_STATUS_CODES = frozenset({404, 403, 500, 502, 503, 504})
DEFAULT_SCAN_FREQUENCY = "weekly"

BATCH_SIZE_RANGE = (10, 200)
HTTP_TIMEOUT_RANGE = (5, 60)

SCAN_FREQUENCIES = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}


@dataclass
class MediaRecord:
    id: int
    url: Optional[str]
    parent_id: Optional[int] = None
    mime_type: str = ""
    status: str = STATUS_ACTIVE

    @property
    def is_quarantined(self) -> bool:
        return self.status == STATUS_QUARANTINED


def _clamp(value: Any, bounds: Tuple[int, int], default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    low, high = bounds
    return max(low, min(high, number))


def _status_codes(value: Any) -> FrozenSet[int]:
    if not value:
        return DEFAULT_BROKEN_STATUS_CODES
    codes = set()
    for candidate in value:
        try:
            codes.add(int(candidate))
        except (TypeError, ValueError):
            continue
    return frozenset(codes) or DEFAULT_BROKEN_STATUS_CODES


@dataclass(frozen=True)
class ScanSettings:
    """Settings for a single run. Build with ``from_overrides`` to get defaults merged in."""

    batch_size: int = DEFAULT_BATCH_SIZE
    http_timeout: int = DEFAULT_HTTP_TIMEOUT
    broken_status_codes: FrozenSet[int] = DEFAULT_BROKEN_STATUS_CODES
    auto_scan_enabled: bool = True
    scan_frequency: str = DEFAULT_SCAN_FREQUENCY
    log_enabled: bool = True

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, Any]] = None) -> "ScanSettings":
        """
        Merges persisted overrides over the defaults.

        Integers outside their allowed range are clamped, an empty or unusable
        status code list falls back to the default set, and an unknown
        frequency falls back to weekly.
        """
        overrides = dict(overrides or {})
        frequency = str(overrides.get("scan_frequency") or DEFAULT_SCAN_FREQUENCY).lower()
        if frequency not in SCAN_FREQUENCIES:
            frequency = DEFAULT_SCAN_FREQUENCY

        return cls(
            batch_size=_clamp(overrides.get("batch_size"), BATCH_SIZE_RANGE, DEFAULT_BATCH_SIZE),
            http_timeout=_clamp(overrides.get("http_timeout"), HTTP_TIMEOUT_RANGE, DEFAULT_HTTP_TIMEOUT),
            broken_status_codes=_status_codes(overrides.get("broken_status_codes")),
            auto_scan_enabled=bool(overrides.get("auto_scan_enabled", True)),
            scan_frequency=frequency,
            log_enabled=bool(overrides.get("log_enabled", True)),
        )

    @property
    def interval(self) -> timedelta:
        return SCAN_FREQUENCIES[self.scan_frequency]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "http_timeout": self.http_timeout,
            "broken_status_codes": sorted(self.broken_status_codes),
            "auto_scan_enabled": self.auto_scan_enabled,
            "scan_frequency": self.scan_frequency,
            "log_enabled": self.log_enabled,
        }


@dataclass(frozen=True)
class ActionOutcome:
    attachment_id: int
    url: Optional[str]
    parent_id: Optional[int]
    actions: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attachment_id": self.attachment_id,
            "url": self.url,
            "parent_id": self.parent_id,
            "actions": list(self.actions),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActionOutcome":
        return cls(
            attachment_id=int(data["attachment_id"]),
            url=data.get("url"),
            parent_id=data.get("parent_id"),
            actions=tuple(data.get("actions") or ()),
        )


@dataclass(frozen=True)
class ScanReport:
    timestamp: str
    total_scanned: int
    broken_count: int
    outcomes: Tuple[ActionOutcome, ...] = field(default_factory=tuple)
    errors: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "total_scanned": self.total_scanned,
            "broken_count": self.broken_count,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanReport":
        outcomes = tuple(ActionOutcome.from_dict(item) for item in data.get("outcomes") or ())
        return cls(
            timestamp=data.get("timestamp", ""),
            total_scanned=int(data.get("total_scanned", 0)),
            broken_count=len(outcomes),
            outcomes=outcomes,
            errors=tuple(data.get("errors") or ()),
        )


@dataclass(frozen=True)
class BatchResult:
    processed_count: int
    broken: Tuple[ActionOutcome, ...] = field(default_factory=tuple)
    errors: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed_count,
            "broken": [outcome.to_dict() for outcome in self.broken],
            "errors": list(self.errors),
        }
