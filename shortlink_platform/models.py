"""
Domain records shared by storage, resolver and analytics.

All timestamps are timezone-aware and normalized to UTC; naive datetimes are
interpreted as UTC so day bucketing stays deterministic.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, NamedTuple, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class ShortLink:
    """
    A short code bound to a target URL.

    Instances are snapshots: storage hands out fresh copies, and the only
    field that ever changes between snapshots is `click_count`, which grows.
    """

    code: str
    target_url: str
    created_at: datetime
    owner_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    click_count: int = 0

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(now or utcnow()) >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape used by the HTTP API."""
        return {
            "code": self.code,
            "targetUrl": self.target_url,
            "ownerId": self.owner_id,
            "createdAt": _iso(self.created_at),
            "expiresAt": _iso(self.expires_at),
            "clickCount": self.click_count,
        }


@dataclass(frozen=True)
class ClickEvent:
    """One successful redirect of `code` at `timestamp`."""

    code: str
    timestamp: datetime

    def __post_init__(self):
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    @property
    def date_bucket(self) -> date:
        return self.timestamp.date()


class DailyCount(NamedTuple):
    date: date
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "count": self.count}
