"""
Import pipeline - orchestrates data flow from providers to database.

Pipeline stages:
1. Retrieve: ask every configured provider for recent observations
2. Insert: write the aggregated batch, skipping records already stored
3. Report: hand the insertion result back to the caller

Stages run strictly in order; insertion never starts before retrieval
has returned, and never runs at all if retrieval failed.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from obsimport.errors import InsertionError, ObservationImportError, RetrievalError
from obsimport.ingestion.providers import ObservationProvider
from obsimport.ingestion.records import ObservationBatch
from obsimport.models import Observation
from obsimport.models.base import get_session

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    'sqlite': sqlite_insert,
    'postgresql': postgresql_insert,
}


@dataclass
class InsertionResult:
    """Outcome of persisting one observation batch."""
    received: int = 0
    inserted: int = 0
    skipped: int = 0
    by_source: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'received': self.received,
            'inserted': self.inserted,
            'skipped': self.skipped,
            'by_source': dict(self.by_source),
        }


def retrieve_observations(providers: Sequence[ObservationProvider]) -> ObservationBatch:
    """
    Fetch observations from every provider, in list order.

    Returns the concatenated batch. The first provider failure aborts
    retrieval and is raised as RetrievalError naming that provider.
    """
    batch: ObservationBatch = []

    for provider in providers:
        name = getattr(provider, 'name', None) or type(provider).__name__
        try:
            records = provider.fetch_observations()
        except Exception as e:
            logger.error(f'Retrieval from {name} failed: {e}')
            raise RetrievalError(f'{name}: {e}', provider=name) from e

        logger.info(f'Retrieved {len(records)} observations from {name}')
        batch.extend(records)

    return batch


def insert_observations(
    batch: ObservationBatch,
    session_factory: Callable = get_session,
) -> InsertionResult:
    """
    Insert a batch of observations in a single transaction.

    Records whose (source, external_id) already exist are skipped, including
    duplicates within the same batch. Any database error rolls back the
    whole batch and is raised as InsertionError.
    """
    result = InsertionResult(received=len(batch))
    if not batch:
        return result

    inserted_by_source: Counter = Counter()

    try:
        with session_factory() as session:
            dialect = session.get_bind().dialect.name
            insert = _DIALECT_INSERTS.get(dialect)
            if insert is None:
                raise InsertionError(f'Unsupported database dialect: {dialect}')

            for record in batch:
                stmt = insert(Observation).values(**record.to_row())
                stmt = stmt.on_conflict_do_nothing(
                    index_elements=['source', 'external_id'],
                )
                if session.execute(stmt).rowcount:
                    inserted_by_source[record.source] += 1

    except SQLAlchemyError as e:
        logger.error(f'Insertion failed: {e}')
        raise InsertionError(f'Database write failed: {e}') from e

    result.inserted = sum(inserted_by_source.values())
    result.skipped = result.received - result.inserted
    result.by_source = dict(inserted_by_source)

    logger.info(f'Inserted {result.inserted} observations ({result.skipped} already stored)')
    return result


@dataclass
class ImportOutcome:
    """
    Result of one import run: either the insertion result or a failure.

    ``result`` is whatever the insertion function returned and is passed
    through untouched.
    """
    success: bool
    result: Any = None
    error: Optional[str] = None
    stage: Optional[str] = None
    provider: Optional[str] = None

    @classmethod
    def ok(cls, result: Any) -> 'ImportOutcome':
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, exc: ObservationImportError) -> 'ImportOutcome':
        return cls(
            success=False,
            error=str(exc),
            stage=exc.stage,
            provider=getattr(exc, 'provider', None),
        )

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        # Upstream provider failure vs. our own datastore failure
        return 502 if self.stage == 'retrieve' else 500

    def error_dict(self) -> dict:
        body = {'error': self.error, 'stage': self.stage}
        if self.provider:
            body['provider'] = self.provider
        return body


def serialize_result(value: Any) -> Any:
    """Render an insertion result for a JSON response."""
    to_dict = getattr(value, 'to_dict', None)
    if callable(to_dict):
        return to_dict()
    return value


class ObservationImporter:
    """
    Runs retrieve-then-insert for a fixed provider list.

    The provider list and both stage functions are injected so callers
    (and tests) control exactly which sources and which datastore an
    import touches.
    """

    def __init__(
        self,
        providers: Sequence[ObservationProvider],
        retrieve: Callable[[Sequence[ObservationProvider]], Any] = retrieve_observations,
        insert: Callable[[Any], Any] = insert_observations,
    ):
        self.providers = tuple(providers)
        self._retrieve = retrieve
        self._insert = insert

        # Stats may be touched by the scheduler thread and request threads
        self._lock = threading.Lock()
        self._run_count: int = 0
        self._error_count: int = 0
        self._last_run_time: float = 0
        self._last_result: Any = None
        self._last_error: Optional[str] = None

    @property
    def provider_names(self) -> List[str]:
        return [getattr(p, 'name', None) or type(p).__name__ for p in self.providers]

    def run(self) -> ImportOutcome:
        """
        Execute one import.

        Returns an ImportOutcome; domain failures are reported in the
        outcome rather than raised.
        """
        started = time.perf_counter()
        outcome: Optional[ImportOutcome] = None
        unexpected: Optional[str] = None

        try:
            data = self._retrieve(list(self.providers))
            result = self._insert(data)
            outcome = ImportOutcome.ok(result)
        except ObservationImportError as e:
            outcome = ImportOutcome.failed(e)
        except Exception as e:
            unexpected = f'{type(e).__name__}: {e}'
            raise
        finally:
            # Every run is counted, including ones that raise
            with self._lock:
                self._run_count += 1
                self._last_run_time = time.time()
                if outcome is not None and outcome.success:
                    self._last_result = serialize_result(outcome.result)
                    self._last_error = None
                else:
                    self._error_count += 1
                    self._last_error = outcome.error if outcome is not None else unexpected

        elapsed_ms = (time.perf_counter() - started) * 1000

        if outcome.success:
            logger.info(f'Import completed in {elapsed_ms:.0f}ms')
        else:
            logger.error(f'Import failed at {outcome.stage} stage: {outcome.error}')

        return outcome

    @property
    def stats(self) -> dict:
        """Get import statistics."""
        with self._lock:
            return {
                'providers': self.provider_names,
                'run_count': self._run_count,
                'error_count': self._error_count,
                'last_run_time': self._last_run_time,
                'last_result': self._last_result,
                'last_error': self._last_error,
            }
