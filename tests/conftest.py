"""Shared fixtures: in-memory database, stub providers, Flask test client."""

from __future__ import annotations

import os

# Must be set before obsimport.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IMPORT_INTERVAL_MINUTES"] = "0"
os.environ["IMPORT_PROVIDERS"] = "mountainhub"

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402

from obsimport.app import create_app  # noqa: E402
from obsimport.ingestion.pipeline import ObservationImporter  # noqa: E402
from obsimport.ingestion.providers import ObservationProvider  # noqa: E402
from obsimport.ingestion.records import ObservationRecord  # noqa: E402
from obsimport.models.base import Base, engine  # noqa: E402


class StubProvider(ObservationProvider):
    """Provider returning canned records, or raising a canned error."""

    def __init__(self, name: str, records=None, error: Exception | None = None) -> None:
        self.name = name
        self.records = list(records or [])
        self.error = error
        self.calls = 0

    def fetch_observations(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.records)


def make_record(external_id: str, source: str = "mountainhub", hour: int = 12, **kwargs) -> ObservationRecord:
    """Build a record at the given hour on 2026-01-15 UTC."""
    return ObservationRecord(
        source=source,
        external_id=external_id,
        observed_at=datetime(2026, 1, 15, hour, 0, tzinfo=timezone.utc),
        latitude=kwargs.pop("latitude", 46.85),
        longitude=kwargs.pop("longitude", -121.76),
        obs_type=kwargs.pop("obs_type", "snow_conditions"),
        raw=kwargs.pop("raw", {"observation": {"_id": external_id}}),
        **kwargs,
    )


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate the schema around every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def stub_provider() -> StubProvider:
    """Provider with two fresh mountainhub records."""
    return StubProvider("mountainhub", records=[make_record("a1"), make_record("a2", hour=13)])


@pytest.fixture
def app(stub_provider: StubProvider):
    """App wired to the stub provider, scheduler off."""
    app = create_app(importer=ObservationImporter([stub_provider]), start_scheduler=False)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
