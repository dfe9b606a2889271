"""
Status API endpoint.

- GET /api/status - Database connectivity, importer and scheduler state
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from obsimport.config import config
from obsimport.models.base import SessionLocal

logger = logging.getLogger(__name__)

status_bp = Blueprint('status', __name__, url_prefix='/api/status')


@status_bp.route('', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Database connectivity
    - Importer statistics (runs, errors, last result)
    - Scheduler state
    """
    start_time = time.perf_counter()

    db_ok = True
    try:
        with SessionLocal() as session:
            session.execute(text('SELECT 1'))
    except Exception as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    importer = current_app.config['OBSERVATION_IMPORTER']
    scheduler = current_app.config.get('IMPORT_SCHEDULER')

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'healthy' if db_ok else 'degraded',
        'database': {
            'connected': db_ok,
            'type': 'sqlite' if config.database.is_sqlite else 'postgresql',
        },
        'importer': importer.stats,
        'scheduler': {
            'running': scheduler.running if scheduler else False,
            'interval_minutes': config.imports.interval_minutes,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
