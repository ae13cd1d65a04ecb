"""Data models for the short link service."""

import enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize naive datetimes to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return _as_utc(value)
    return _as_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class LinkRecord:
    """A persisted mapping between a short token and a long URL."""

    short_token: str
    long_url: str
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[int] = None
    last_accessed: Optional[datetime] = None
    access_count: int = 0
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_by: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        # frozen dataclass: bypass __setattr__ for normalization
        object.__setattr__(self, "created_at", _as_utc(self.created_at))
        object.__setattr__(self, "last_accessed", _as_utc(self.last_accessed))
        object.__setattr__(self, "expires_at", _as_utc(self.expires_at))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the record's expiry time has passed."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    def is_resolvable(self, now: Optional[datetime] = None) -> bool:
        """Check whether the record may be returned by a resolution."""
        return self.is_active and not self.is_expired(now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        for key in ("created_at", "last_accessed", "expires_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkRecord":
        """Create from a dictionary or a database row mapping."""
        return cls(
            id=data.get("id"),
            short_token=data["short_token"],
            long_url=data["long_url"],
            created_at=_parse_datetime(data["created_at"]),
            last_accessed=_parse_datetime(data.get("last_accessed")),
            access_count=data.get("access_count") or 0,
            is_active=bool(data.get("is_active", True)),
            expires_at=_parse_datetime(data.get("expires_at")),
            created_by=data.get("created_by"),
            description=data.get("description"),
        )


class CreateStatus(str, enum.Enum):
    """Outcome of a create call."""

    CREATED = "created"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class CreateResult:
    record: LinkRecord
    status: CreateStatus

    @property
    def created(self) -> bool:
        return self.status is CreateStatus.CREATED
