"""
obsimport Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Observation providers and importer
- Optional scheduled imports
- API routes

Usage:
    python -m obsimport.app

Or with gunicorn:
    gunicorn 'obsimport.app:create_app()'
"""

import logging
import os
from typing import Optional, Sequence

from flask import Flask
from flask_cors import CORS

from obsimport.config import config
from obsimport.models import init_db
from obsimport.api import imports_bp, observations_bp, status_bp
from obsimport.ingestion import ImportScheduler, ObservationImporter, build_providers
from obsimport.ingestion.providers import ObservationProvider

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    providers: Optional[Sequence[ObservationProvider]] = None,
    importer: Optional[ObservationImporter] = None,
    start_scheduler: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        providers: Observation providers to import from. Built from
                   IMPORT_PROVIDERS when None.
        importer: Fully built importer; overrides ``providers`` when given.
        start_scheduler: Whether to start scheduled imports when
                         IMPORT_INTERVAL_MINUTES is set. Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    logger.info('Initializing database...')
    init_db()

    app.register_blueprint(imports_bp)
    app.register_blueprint(observations_bp)
    app.register_blueprint(status_bp)

    # Provider list is fixed for the lifetime of the app
    if importer is None:
        if providers is None:
            providers = build_providers(config.imports.providers)
        importer = ObservationImporter(providers)

    app.config['OBSERVATION_IMPORTER'] = importer
    app.config['IMPORT_SCHEDULER'] = None

    if start_scheduler and config.imports.is_scheduled:
        scheduler = ImportScheduler(importer, interval_seconds=config.imports.interval_minutes * 60)
        scheduler.start_background()
        app.config['IMPORT_SCHEDULER'] = scheduler
        logger.info(f'Scheduled imports every {config.imports.interval_minutes} minutes')

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'error': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting obsimport on http://localhost:{port}')
    logger.info(f'Trigger an import: POST http://localhost:{port}/api/import')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Reloader would start a second scheduler thread
    )


if __name__ == '__main__':
    run_development_server()
