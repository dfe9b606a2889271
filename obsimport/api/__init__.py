"""
API module for obsimport.

Provides REST endpoints for:
- Triggering an observation import
- Reading stored observations
- System status
"""

from obsimport.api.imports import imports_bp
from obsimport.api.observations import observations_bp
from obsimport.api.status import status_bp

__all__ = ['imports_bp', 'observations_bp', 'status_bp']
