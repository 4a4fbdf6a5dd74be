"""
Sync Orchestrator Module
Runs every entity sync in dependency order and records the run.
"""

import time
from datetime import datetime
from typing import Dict, List

from jira_sync.config_manager import ConfigManager
from jira_sync.database.connection import DatabaseConnection, get_db
from jira_sync.database.models import SyncRun
from jira_sync.jira_client import JiraClient
from jira_sync.sync.custom_fields import CustomFieldsSyncTask
from jira_sync.sync.issues import IssuesSyncTask
from jira_sync.sync.projects import ProjectsSyncTask
from jira_sync.sync.sprints import SprintsSyncTask
from jira_sync.sync.types import SyncAllResult, SyncSummary, SyncTaskResult
from jira_sync.sync.users import UsersSyncTask
from jira_sync.utils.helpers import to_utc_naive, utc_now
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)

# Later tasks read rows written by earlier ones
TASK_ORDER = [
    UsersSyncTask,
    ProjectsSyncTask,
    CustomFieldsSyncTask,
    SprintsSyncTask,
    IssuesSyncTask,
]


class SyncOrchestrator:
    """
    Full Jira to warehouse sync.

    Every task runs to completion even when an earlier one failed; the run
    is successful only if all tasks are.
    """

    def __init__(self, jira: JiraClient = None, db: DatabaseConnection = None, sync_config: Dict = None):
        self.jira = jira if jira is not None else JiraClient()
        self.db = db if db is not None else get_db()
        self.sync_config = sync_config if sync_config is not None else ConfigManager().get_sync_config()

    def run(self) -> SyncAllResult:
        """Run all sync tasks in order; never raises."""
        started_at = utc_now()
        start_time = time.monotonic()
        logger.info("Starting full Jira data sync...")

        tasks: List[SyncTaskResult] = []
        for task_class in TASK_ORDER:
            task = task_class(jira=self.jira, db=self.db, sync_config=self.sync_config)
            tasks.append(task.run())

        completed_at = utc_now()
        summary = SyncSummary.from_tasks(tasks)
        result = SyncAllResult(
            success=all(task.success for task in tasks),
            total_duration_ms=int((time.monotonic() - start_time) * 1000),
            started_at=started_at.isoformat(),
            completed_at=completed_at.isoformat(),
            tasks=tasks,
            summary=summary
        )

        if result.success:
            logger.info(
                f"Full sync completed in {result.total_duration_ms}ms: created {summary.total_created}, "
                f"updated {summary.total_updated}, errors {summary.total_errors}"
            )
        else:
            failed = ', '.join(task.task_name for task in tasks if not task.success)
            logger.error(f"Full sync finished with failed tasks: {failed}")

        self._record_run(result, started_at, completed_at)
        return result

    def _record_run(self, result: SyncAllResult, started_at: datetime, completed_at: datetime) -> None:
        """Store the run in sync_runs; a failure here is logged only."""
        try:
            with self.db.session_scope() as session:
                session.add(SyncRun(
                    started_at=to_utc_naive(started_at),
                    completed_at=to_utc_naive(completed_at),
                    status='completed' if result.success else 'failed',
                    duration_ms=result.total_duration_ms,
                    total_created=result.summary.total_created,
                    total_updated=result.summary.total_updated,
                    total_errors=result.summary.total_errors,
                    successful_tasks=result.summary.successful_tasks,
                    failed_tasks=result.summary.failed_tasks,
                    result=result.to_dict()
                ))
        except Exception as e:
            logger.error(f"Failed to record sync run: {e}")


def run_full_sync() -> SyncAllResult:
    """
    Convenience function to run a full sync with configured clients.

    Returns:
        SyncAllResult of the run
    """
    return SyncOrchestrator().run()
