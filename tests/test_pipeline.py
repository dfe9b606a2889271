"""Tests for retrieval, insertion, and the importer that sequences them."""

from __future__ import annotations

from unittest.mock import MagicMock, Mock

import pytest
import requests
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from obsimport.errors import InsertionError, RetrievalError
from obsimport.ingestion.pipeline import (
    ImportOutcome,
    InsertionResult,
    ObservationImporter,
    insert_observations,
    retrieve_observations,
    serialize_result,
)
from obsimport.ingestion.records import ObservationRecord
from obsimport.models import Observation
from obsimport.models.base import SessionLocal

from .conftest import StubProvider, make_record


def _stored_ids() -> list[str]:
    with SessionLocal() as session:
        return sorted(session.scalars(select(Observation.external_id)).all())


class TestRetrieveObservations:
    """Test fan-out across providers."""

    def test_concatenates_in_provider_order(self) -> None:
        """Each provider is called once and results keep provider order."""
        first = StubProvider("first", records=[make_record("1", source="first"), make_record("2", source="first")])
        second = StubProvider("second", records=[make_record("3", source="second")])

        batch = retrieve_observations([first, second])

        assert [r.external_id for r in batch] == ["1", "2", "3"]
        assert first.calls == 1
        assert second.calls == 1

    def test_empty_provider_list(self) -> None:
        """No providers means an empty batch."""
        assert retrieve_observations([]) == []

    def test_failure_names_provider_and_stops(self) -> None:
        """The first failing provider aborts retrieval and is named."""
        broken = StubProvider("mountainhub", error=requests.exceptions.ConnectionError("refused"))
        later = StubProvider("later", records=[make_record("9")])

        with pytest.raises(RetrievalError) as exc_info:
            retrieve_observations([broken, later])

        assert exc_info.value.provider == "mountainhub"
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)
        assert later.calls == 0


class TestInsertObservations:
    """Test persisting batches to the database."""

    def test_inserts_batch(self) -> None:
        """A fresh batch is stored and counted per source."""
        result = insert_observations([make_record("a"), make_record("b")])

        assert result == InsertionResult(received=2, inserted=2, skipped=0, by_source={"mountainhub": 2})
        assert _stored_ids() == ["a", "b"]

    def test_reimport_is_idempotent(self) -> None:
        """Records already stored are skipped, new ones inserted."""
        insert_observations([make_record("a"), make_record("b")])

        result = insert_observations([make_record("b"), make_record("c")])

        assert result.inserted == 1
        assert result.skipped == 1
        assert _stored_ids() == ["a", "b", "c"]

    def test_duplicates_within_batch_skipped(self) -> None:
        """A repeated record within one batch is stored once."""
        result = insert_observations([make_record("a"), make_record("a")])
        assert (result.inserted, result.skipped) == (1, 1)

    def test_same_id_different_source_both_stored(self) -> None:
        """The dedup key includes the source."""
        result = insert_observations([make_record("a"), make_record("a", source="other")])
        assert result.by_source == {"mountainhub": 1, "other": 1}

    def test_empty_batch(self) -> None:
        """An empty batch returns zero counts."""
        assert insert_observations([]) == InsertionResult()

    def test_raw_payload_and_fields_stored(self) -> None:
        """Normalized fields and the raw payload round-trip through the table."""
        insert_observations([make_record("a", title="Cornice", author="Sam Rivera")])

        with SessionLocal() as session:
            row = session.scalars(select(Observation)).one()

        assert row.title == "Cornice"
        assert row.author == "Sam Rivera"
        assert row.raw == {"observation": {"_id": "a"}}

    def test_failed_row_rolls_back_whole_batch(self) -> None:
        """A constraint violation mid-batch leaves nothing stored."""
        bad = ObservationRecord(source="mountainhub", external_id="bad", observed_at=None)

        with pytest.raises(InsertionError):
            insert_observations([make_record("good"), bad])

        assert _stored_ids() == []

    def test_database_error_wrapped_and_not_committed(self) -> None:
        """Driver errors surface as InsertionError without a commit."""
        session = MagicMock()
        session.__enter__.return_value = session
        session.get_bind.return_value.dialect.name = "sqlite"
        session.execute.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))

        with pytest.raises(InsertionError):
            insert_observations([make_record("a")], session_factory=lambda: session)

        session.commit.assert_not_called()

    def test_unsupported_dialect(self) -> None:
        """Dialects without an upsert form are rejected."""
        session = MagicMock()
        session.__enter__.return_value = session
        session.get_bind.return_value.dialect.name = "oracle"

        with pytest.raises(InsertionError, match="oracle"):
            insert_observations([make_record("a")], session_factory=lambda: session)


class TestObservationImporter:
    """Test retrieve-then-insert sequencing and outcome reporting."""

    def test_insert_receives_exactly_retrieved_data_after_retrieval(self) -> None:
        """Insert is called after retrieve, with the identical batch."""
        data = {"observations": [{"id": 1}, {"id": 2}]}
        manager = Mock()
        manager.retrieve.return_value = data
        manager.insert.return_value = {"inserted": 3}
        provider = StubProvider("mountainhub")

        importer = ObservationImporter([provider], retrieve=manager.retrieve, insert=manager.insert)
        outcome = importer.run()

        assert outcome == ImportOutcome.ok({"inserted": 3})
        assert [c[0] for c in manager.mock_calls] == ["retrieve", "insert"]
        manager.retrieve.assert_called_once_with([provider])
        assert manager.insert.call_args.args[0] is data

    def test_retrieval_failure_skips_insert(self) -> None:
        """A retrieval failure yields a 502 outcome and no insert."""
        retrieve = Mock(side_effect=RetrievalError("mountainhub: boom", provider="mountainhub"))
        insert = Mock()

        outcome = ObservationImporter([StubProvider("mountainhub")], retrieve=retrieve, insert=insert).run()

        insert.assert_not_called()
        assert not outcome.success
        assert outcome.stage == "retrieve"
        assert outcome.status_code == 502
        assert outcome.error_dict() == {"error": "mountainhub: boom", "stage": "retrieve", "provider": "mountainhub"}

    def test_insertion_failure(self) -> None:
        """An insertion failure yields a 500 outcome without a provider."""
        insert = Mock(side_effect=InsertionError("Database write failed"))

        outcome = ObservationImporter([StubProvider("mountainhub")], retrieve=Mock(return_value=[]), insert=insert).run()

        assert outcome.stage == "insert"
        assert outcome.status_code == 500
        assert "provider" not in outcome.error_dict()

    def test_unexpected_errors_propagate_and_are_counted(self) -> None:
        """Non-domain errors are re-raised but still recorded in stats."""
        importer = ObservationImporter([], retrieve=Mock(return_value=[]), insert=Mock(side_effect=KeyError("bug")))

        with pytest.raises(KeyError):
            importer.run()

        stats = importer.stats
        assert stats["run_count"] == 1
        assert stats["error_count"] == 1
        assert stats["last_error"].startswith("KeyError")

    def test_end_to_end_with_real_stages(self, stub_provider: StubProvider) -> None:
        """Default stages fetch from the provider and write to the database."""
        outcome = ObservationImporter([stub_provider]).run()

        assert outcome.success
        assert outcome.result.inserted == 2
        assert _stored_ids() == ["a1", "a2"]

    def test_stats_track_runs_and_errors(self, stub_provider: StubProvider) -> None:
        """Stats keep run and error counts plus the last result and error."""
        importer = ObservationImporter([stub_provider])
        importer.run()
        stub_provider.error = RuntimeError("down")
        importer.run()

        stats = importer.stats
        assert stats["providers"] == ["mountainhub"]
        assert stats["run_count"] == 2
        assert stats["error_count"] == 1
        assert stats["last_result"]["inserted"] == 2
        assert "down" in stats["last_error"]


class TestSerializeResult:
    """Test rendering insertion results for responses."""

    def test_uses_to_dict(self) -> None:
        """Objects with to_dict are rendered through it."""
        assert serialize_result(InsertionResult(received=1, inserted=1)) == {
            "received": 1,
            "inserted": 1,
            "skipped": 0,
            "by_source": {},
        }

    def test_plain_values_untouched(self) -> None:
        """Plain values pass through as the same object."""
        value = {"inserted": 3}
        assert serialize_result(value) is value


def test_row_count_matches_result(stub_provider: StubProvider) -> None:
    """The table holds exactly the rows the import reported."""
    ObservationImporter([stub_provider]).run()
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Observation)) == 2
