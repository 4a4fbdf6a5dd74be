"""
Sync Task Base Module
Shared run loop, timing and task-level error handling for the entity syncs.
"""

import time
from abc import ABC, abstractmethod
from typing import Dict

from jira_sync.config_manager import ConfigManager
from jira_sync.database.connection import DatabaseConnection, get_db
from jira_sync.jira_client import JiraAPIError, JiraClient
from jira_sync.sync.types import SyncTaskResult
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)


class SyncPreconditionError(Exception):
    """Raised when a task's warehouse prerequisites are missing."""


class SyncTask(ABC):
    """
    Abstract base class for an entity sync task.

    Subclasses implement ``execute()``, catching per-record failures
    themselves. Anything that escapes ``execute()`` fails the task but never
    propagates out of ``run()``.
    """

    task_name: str = 'Task'

    def __init__(self, jira: JiraClient = None, db: DatabaseConnection = None, sync_config: Dict = None):
        self.jira = jira if jira is not None else JiraClient()
        self.db = db if db is not None else get_db()
        self.sync_config = sync_config if sync_config is not None else ConfigManager().get_sync_config()
        self.progress_interval = int(self.sync_config.get('progress_interval', 50))

    def run(self) -> SyncTaskResult:
        """Run the task and return its result; never raises."""
        start_time = time.monotonic()
        logger.info(f"[{self.task_name}] Starting {self.task_name} data sync...")

        try:
            result = self.execute()
        except SyncPreconditionError as e:
            logger.error(f"[{self.task_name}] {e}")
            result = SyncTaskResult.failed(self.task_name, str(e))
        except JiraAPIError as e:
            logger.error(f"[{self.task_name}] Jira API error: {e.message}")
            details = {}
            if e.status_code is not None:
                details['statusCode'] = e.status_code
            if e.response is not None:
                details['response'] = e.response
            result = SyncTaskResult.failed(self.task_name, e.message, details or None)
        except Exception as e:
            logger.exception(f"[{self.task_name}] Error during sync process: {e}")
            result = SyncTaskResult.failed(self.task_name, str(e))

        result.duration_ms = int((time.monotonic() - start_time) * 1000)

        if result.success:
            logger.info(
                f"[{self.task_name}] Sync completed! Created {result.created}, "
                f"updated {result.updated}, errors {result.errors}, duration {result.duration_ms}ms"
            )
        return result

    @abstractmethod
    def execute(self) -> SyncTaskResult:
        """Fetch and store this task's entities."""
        pass

    def page_size(self, key: str, default: int) -> int:
        return int(self.sync_config.get(key, default))
