"""
Observation read API endpoints.

Provides endpoints for:
- GET /api/observations - List stored observations, newest first
- GET /api/observations/<id> - Get a single observation with its raw payload
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request
from sqlalchemy import select

from obsimport.ingestion.records import parse_timestamp
from obsimport.models import Observation
from obsimport.models.base import SessionLocal

logger = logging.getLogger(__name__)

observations_bp = Blueprint('observations', __name__, url_prefix='/api/observations')

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


@observations_bp.route('', methods=['GET'])
def list_observations():
    """
    List stored observations.

    Query parameters:
    - source: string, only observations from this provider
    - since: ISO-8601 timestamp, only observations reported at or after it
    - limit: int, max results to return (default 100, max 500)
    """
    start_time = time.perf_counter()

    source = request.args.get('source')
    since_arg = request.args.get('since')

    try:
        limit = int(request.args.get('limit', DEFAULT_LIMIT))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    if limit < 1:
        return jsonify({'error': 'limit must be positive'}), 400
    limit = min(limit, MAX_LIMIT)

    since = None
    if since_arg:
        since = parse_timestamp(since_arg)
        if since is None:
            return jsonify({'error': 'since must be an ISO-8601 timestamp'}), 400

    stmt = select(Observation)
    if source:
        stmt = stmt.where(Observation.source == source.lower())
    if since:
        stmt = stmt.where(Observation.observed_at >= since)
    stmt = stmt.order_by(Observation.observed_at.desc(), Observation.id.desc()).limit(limit)

    with SessionLocal() as session:
        observations = session.scalars(stmt).all()

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'observations': [o.to_dict() for o in observations],
        'count': len(observations),
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@observations_bp.route('/<int:observation_id>', methods=['GET'])
def get_observation(observation_id: int):
    """Get one observation including the provider's original payload."""
    with SessionLocal() as session:
        observation = session.get(Observation, observation_id)

    if observation is None:
        return jsonify({'error': 'Observation not found'}), 404

    return jsonify(observation.to_dict(include_raw=True))
