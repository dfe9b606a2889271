"""
Database models for obsimport.

Schema designed for imported observation records with these priorities:
1. Idempotent batch inserts (re-importing a window never duplicates rows)
2. Efficient newest-first listing
3. Lossless storage of the provider payload
"""

from obsimport.models.base import Base, engine, SessionLocal, init_db, get_session
from obsimport.models.observation import Observation

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'get_session',
    'Observation',
]
