"""
obsimport Backend Package.

Observation import service built with Flask, SQLAlchemy, and requests.

Modules:
    api/         REST endpoints for triggering imports, reading observations, and status
    models/      SQLAlchemy ORM models (Observation)
    ingestion/   Provider clients (MountainHub), retrieve/insert pipeline, scheduler
    errors.py    Retrieval and insertion failure types
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
