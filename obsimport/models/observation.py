"""
Observation model - field observations imported from providers.

One row per (source, external_id). Imports are append-only: a record that
was already stored is skipped rather than updated, so re-running an
import over an overlapping time window is harmless.

Schema optimized for:
- Idempotent batch inserts keyed by provider id
- Newest-first listing, optionally filtered by source
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from obsimport.models.base import Base


def _utc_isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with offset; SQLite hands back naive datetimes that are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class Observation(Base):
    """
    A single observation record as reported by a provider.

    Normalized fields are stored in columns for querying. The provider's
    original payload is kept in ``raw`` so nothing is lost when a provider
    adds fields we don't model yet.
    """

    __tablename__ = 'observations'

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment='Surrogate key'
    )

    # Provenance
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment='Provider name (e.g., mountainhub)'
    )

    external_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment='Observation id assigned by the provider'
    )

    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment='When the observation was reported (UTC)'
    )

    # Position (WGS84)
    latitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Latitude in decimal degrees'
    )

    longitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Longitude in decimal degrees'
    )

    # Content
    obs_type: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment='Provider observation category'
    )

    title: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    author: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        comment='Observer display name'
    )

    url: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True,
    )

    raw: Mapped[Optional[Any]] = mapped_column(
        JSON,
        nullable=True,
        comment='Original provider payload'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        comment='Row insertion time'
    )

    __table_args__ = (
        # Dedup key for imports
        UniqueConstraint('source', 'external_id', name='uq_observations_source_external_id'),

        # Listing query: newest first, optionally by source
        Index('ix_observations_observed_at', 'observed_at'),
        Index('ix_observations_source_observed_at', 'source', 'observed_at'),
    )

    def __repr__(self) -> str:
        return f'<Observation {self.source}:{self.external_id} @ {self.observed_at}>'

    def to_dict(self, include_raw: bool = False) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        data = {
            'id': self.id,
            'source': self.source,
            'external_id': self.external_id,
            'observed_at': _utc_isoformat(self.observed_at),
            'location': {
                'latitude': self.latitude,
                'longitude': self.longitude,
            },
            'obs_type': self.obs_type,
            'title': self.title,
            'description': self.description,
            'author': self.author,
            'url': self.url,
            'created_at': _utc_isoformat(self.created_at),
        }
        if include_raw:
            data['raw'] = self.raw
        return data
