"""
Provider-neutral observation record.

Every provider client normalizes its payload into ``ObservationRecord``
values; the insertion stage only ever sees this shape.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union


@dataclass
class ObservationRecord:
    """
    One observation as reported by a provider.

    ``source`` and ``external_id`` together identify the record; all other
    fields may be None if the provider did not report them.
    """
    source: str
    external_id: str
    observed_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    obs_type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def has_position(self) -> bool:
        """Check if this record has a usable position."""
        return self.latitude is not None and self.longitude is not None

    def to_row(self) -> dict:
        """Dict ready for database insertion."""
        return {
            'source': self.source,
            'external_id': self.external_id,
            'observed_at': self.observed_at,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'obs_type': self.obs_type,
            'title': self.title,
            'description': self.description,
            'author': self.author,
            'url': self.url,
            'raw': self.raw,
        }


# Retrieval output; provider order is preserved
ObservationBatch = List[ObservationRecord]


def parse_timestamp(value: Union[int, float, str, None]) -> Optional[datetime]:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Accepts Unix epoch numbers (seconds or milliseconds) and ISO-8601
    strings, including a trailing 'Z'. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    return None
