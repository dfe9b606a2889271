"""
Import trigger endpoint.

- POST /api/import - Retrieve observations from the configured providers
                     and write them to the database
  (GET is accepted too, for schedulers that can only issue GETs)

The request body is ignored. On success the response body is the
insertion result; on failure it is an error object naming the stage that
failed.
"""

import logging

from flask import Blueprint, jsonify, current_app

from obsimport.ingestion.pipeline import serialize_result

logger = logging.getLogger(__name__)

imports_bp = Blueprint('imports', __name__, url_prefix='/api/import')


@imports_bp.route('', methods=['GET', 'POST'])
def run_import():
    """Run one import and return its result."""
    importer = current_app.config['OBSERVATION_IMPORTER']

    outcome = importer.run()

    if not outcome.success:
        return jsonify(outcome.error_dict()), outcome.status_code

    return jsonify(serialize_result(outcome.result))
