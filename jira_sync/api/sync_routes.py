"""
Sync API Blueprint
Provides REST endpoints for triggering and monitoring warehouse syncs.
"""

from flask import Blueprint, jsonify, request

from jira_sync.database.connection import get_session
from jira_sync.database.models import SyncRun
from jira_sync.sync.orchestrator import run_full_sync
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)

sync_bp = Blueprint('sync', __name__, url_prefix='/api/sync')


def _isoformat(value):
    return value.isoformat() if value else None


def _run_summary(run: SyncRun) -> dict:
    return {
        'id': run.id,
        'status': run.status,
        'started_at': _isoformat(run.started_at),
        'completed_at': _isoformat(run.completed_at),
        'duration_ms': run.duration_ms,
        'total_created': run.total_created,
        'total_updated': run.total_updated,
        'total_errors': run.total_errors,
        'successful_tasks': run.successful_tasks,
        'failed_tasks': run.failed_tasks
    }


@sync_bp.route('/run', methods=['POST'])
def trigger_sync():
    """
    Run a full sync and wait for it to finish.

    Returns:
        JSON SyncAllResult; HTTP 200 even when a task failed
    """
    try:
        logger.info("Full sync triggered via API")
        result = run_full_sync()
        return jsonify(result.to_dict())

    except Exception as e:
        logger.error(f"Sync run failed: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/status', methods=['GET'])
def get_sync_status():
    """
    Get status of recent sync runs.

    Query params:
        limit: Number of runs to return (default 10)
    """
    try:
        limit = int(request.args.get('limit', 10))

        with get_session() as session:
            runs = session.query(SyncRun).order_by(
                SyncRun.started_at.desc(), SyncRun.id.desc()
            ).limit(limit).all()
            result = [_run_summary(run) for run in runs]

        return jsonify({
            'success': True,
            'runs': result
        })

    except Exception as e:
        logger.error(f"Failed to get sync status: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/status/<int:run_id>', methods=['GET'])
def get_sync_run(run_id: int):
    """Get one sync run including its per-task results."""
    try:
        with get_session() as session:
            run = session.get(SyncRun, run_id)

            if not run:
                return jsonify({
                    'success': False,
                    'error': 'Run not found'
                }), 404

            details = _run_summary(run)
            details['result'] = run.result

        return jsonify({
            'success': True,
            'run': details
        })

    except Exception as e:
        logger.error(f"Failed to get sync run {run_id}: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/last-sync', methods=['GET'])
def get_last_sync():
    """Get completion time of the last successful sync."""
    try:
        with get_session() as session:
            run = session.query(SyncRun).filter(
                SyncRun.status == 'completed'
            ).order_by(SyncRun.completed_at.desc()).first()
            timestamp = run.completed_at if run else None

        return jsonify({
            'success': True,
            'last_sync': _isoformat(timestamp)
        })

    except Exception as e:
        logger.error(f"Failed to get last sync timestamp: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500
