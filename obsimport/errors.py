"""
Exceptions raised along the import path.

Retrieval and insertion failures are kept distinct so the HTTP layer can
answer with a status code that says which side failed.
"""

from typing import Optional


class ObservationImportError(Exception):
    """Base class for failures while importing observations."""

    stage = 'import'


class RetrievalError(ObservationImportError):
    """A provider could not be queried or returned unusable data."""

    stage = 'retrieve'

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class InsertionError(ObservationImportError):
    """The observation batch could not be written to the datastore."""

    stage = 'insert'
