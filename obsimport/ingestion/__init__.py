"""
Observation import module for obsimport.

Handles querying observation providers, normalizing their records, and
loading them into the relational database.
"""

from obsimport.ingestion.mountainhub_client import MountainHubClient
from obsimport.ingestion.pipeline import (
    ImportOutcome,
    InsertionResult,
    ObservationImporter,
    insert_observations,
    retrieve_observations,
)
from obsimport.ingestion.providers import ObservationProvider, build_providers
from obsimport.ingestion.records import ObservationRecord
from obsimport.ingestion.scheduler import ImportScheduler

__all__ = [
    'MountainHubClient',
    'ImportOutcome',
    'InsertionResult',
    'ObservationImporter',
    'insert_observations',
    'retrieve_observations',
    'ObservationProvider',
    'build_providers',
    'ObservationRecord',
    'ImportScheduler',
]
