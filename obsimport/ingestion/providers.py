"""
Observation provider contract and registry.

A provider is anything with a ``name`` and a ``fetch_observations()``
method returning ``ObservationRecord`` values. Providers are built once
at startup from the ``IMPORT_PROVIDERS`` setting and handed to the
importer; nothing on the import path mutates them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List

from obsimport.ingestion.records import ObservationRecord

logger = logging.getLogger(__name__)


class ObservationProvider(ABC):
    """Base class for observation sources."""

    name: str = ''

    @abstractmethod
    def fetch_observations(self) -> List[ObservationRecord]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.name}>'


def _mountainhub_factory() -> ObservationProvider:
    # Imported lazily so the registry has no import-time dependency on requests
    from obsimport.ingestion.mountainhub_client import MountainHubClient
    return MountainHubClient.from_config()


PROVIDER_FACTORIES: Dict[str, Callable[[], ObservationProvider]] = {
    'mountainhub': _mountainhub_factory,
}


def build_providers(names: Iterable[str]) -> List[ObservationProvider]:
    """
    Instantiate providers by registry name, in the order given.

    Raises:
        ValueError if a name is not registered or the list is empty.
    """
    names = list(names)
    if not names:
        raise ValueError('At least one observation provider must be configured')

    providers = []
    for name in names:
        factory = PROVIDER_FACTORIES.get(name)
        if factory is None:
            known = ', '.join(sorted(PROVIDER_FACTORIES))
            raise ValueError(f'Unknown observation provider {name!r} (known: {known})')
        providers.append(factory())

    logger.info(f'Configured providers: {[p.name for p in providers]}')
    return providers
