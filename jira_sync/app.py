"""
Flask Application Factory
Main entry point for the Jira sync service.
"""

import os
from datetime import datetime

from flask import Flask, jsonify
from flask_cors import CORS
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from jira_sync import __version__
from jira_sync.config_manager import ConfigManager
from jira_sync.database.connection import get_db
from jira_sync.utils.logger import setup_logging, get_logger


def create_app() -> Flask:
    """
    Application factory for Flask app.

    Returns:
        Configured Flask application
    """
    setup_logging()
    logger = get_logger(__name__)

    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    app.json.sort_keys = False

    CORS(app)

    from jira_sync.api.sync_routes import sync_bp
    app.register_blueprint(sync_bp)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        db_healthy = get_db().check_connection()

        return jsonify({
            'status': 'healthy' if db_healthy else 'degraded',
            'timestamp': datetime.utcnow().isoformat(),
            'database': 'connected' if db_healthy else 'disconnected'
        })

    @app.route('/', methods=['GET'])
    def root():
        """Root endpoint with API info."""
        return jsonify({
            'name': 'Jira Sync API',
            'version': __version__,
            'endpoints': {
                '/health': 'Health check',
                '/api/sync/run': 'Run full sync (POST)',
                '/api/sync/status': 'Recent sync runs (GET)',
                '/api/sync/status/<run_id>': 'Sync run details (GET)',
                '/api/sync/last-sync': 'Last successful sync (GET)'
            }
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    logger.info("Flask application created")

    return app


def create_scheduler() -> BackgroundScheduler:
    """
    Create the background scheduler, with the nightly sync job when enabled.

    Returns:
        Configured scheduler (not started)
    """
    logger = get_logger(__name__)
    scheduler_config = ConfigManager().get_scheduler_config()

    scheduler = BackgroundScheduler()

    if not scheduler_config.get('enabled', False):
        logger.info("Scheduler is disabled")
        return scheduler

    sync_schedule = scheduler_config.get('sync_schedule', '0 2 * * *')

    @scheduler.scheduled_job(CronTrigger.from_crontab(sync_schedule), id='full_sync')
    def scheduled_sync():
        """Scheduled full sync job."""
        logger.info("Running scheduled sync")
        from jira_sync.sync.orchestrator import run_full_sync
        result = run_full_sync()
        if result.success:
            logger.info("Scheduled sync completed")
        else:
            logger.error("Scheduled sync finished with failed tasks")

    logger.info(f"Scheduled full sync with cron '{sync_schedule}'")
    return scheduler


if __name__ == '__main__':
    app = create_app()
    scheduler = create_scheduler()
    scheduler.start()

    try:
        app.run(
            host='0.0.0.0',
            port=int(os.getenv('FLASK_PORT', 6922)),
            debug=os.getenv('FLASK_DEBUG', 'false').lower() == 'true'
        )
    except (KeyboardInterrupt, SystemExit):
        scheduler.shutdown()
