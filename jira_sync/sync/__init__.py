"""
Sync Module
Entity sync tasks and the orchestrator that runs them in order.
"""

from .base import SyncPreconditionError, SyncTask
from .changelog import ChangelogReconstructor
from .custom_fields import CustomFieldsSyncTask
from .issues import IssuesSyncTask, IssueSyncContext
from .orchestrator import SyncOrchestrator, run_full_sync
from .projects import ProjectsSyncTask
from .sprints import SprintsSyncTask
from .types import SyncAllResult, SyncCounts, SyncSummary, SyncTaskResult
from .users import UsersSyncTask

__all__ = [
    'SyncPreconditionError',
    'SyncTask',
    'ChangelogReconstructor',
    'CustomFieldsSyncTask',
    'IssuesSyncTask',
    'IssueSyncContext',
    'SyncOrchestrator',
    'run_full_sync',
    'ProjectsSyncTask',
    'SprintsSyncTask',
    'SyncAllResult',
    'SyncCounts',
    'SyncSummary',
    'SyncTaskResult',
    'UsersSyncTask'
]
