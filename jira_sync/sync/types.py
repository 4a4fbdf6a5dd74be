"""
Sync Result Types
Per-task and per-run result records returned by the sync tasks.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SyncCounts:
    """Created/updated/error tally for one stage of a task."""
    created: int = 0
    updated: int = 0
    errors: int = 0

    def record(self, created: bool) -> None:
        if created:
            self.created += 1
        else:
            self.updated += 1

    def add(self, other: 'SyncCounts') -> 'SyncCounts':
        return SyncCounts(
            created=self.created + other.created,
            updated=self.updated + other.updated,
            errors=self.errors + other.errors
        )

    def to_dict(self) -> Dict[str, int]:
        return {'created': self.created, 'updated': self.updated, 'errors': self.errors}


@dataclass
class SyncTaskResult:
    """
    Outcome of one sync task.

    ``success`` means the task ran to completion; ``errors`` counts records
    that were skipped. A task can succeed with a non-zero error count.
    """
    task_name: str
    success: bool
    duration_ms: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    message: str = ''
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def completed(cls, task_name: str, counts: SyncCounts, message: str,
                  details: Dict[str, Any] = None) -> 'SyncTaskResult':
        return cls(
            task_name=task_name,
            success=True,
            created=counts.created,
            updated=counts.updated,
            errors=counts.errors,
            message=message,
            details=details
        )

    @classmethod
    def failed(cls, task_name: str, message: str, details: Dict[str, Any] = None) -> 'SyncTaskResult':
        return cls(task_name=task_name, success=False, errors=1, message=message, details=details)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'taskName': self.task_name,
            'success': self.success,
            'durationMs': self.duration_ms,
            'created': self.created,
            'updated': self.updated,
            'errors': self.errors,
            'message': self.message,
        }
        if self.details is not None:
            data['details'] = self.details
        return data


@dataclass
class SyncSummary:
    """Totals across every task of a run."""
    total_created: int = 0
    total_updated: int = 0
    total_errors: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0

    @classmethod
    def from_tasks(cls, tasks: List[SyncTaskResult]) -> 'SyncSummary':
        return cls(
            total_created=sum(t.created for t in tasks),
            total_updated=sum(t.updated for t in tasks),
            total_errors=sum(t.errors for t in tasks),
            successful_tasks=sum(1 for t in tasks if t.success),
            failed_tasks=sum(1 for t in tasks if not t.success)
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            'totalCreated': self.total_created,
            'totalUpdated': self.total_updated,
            'totalErrors': self.total_errors,
            'successfulTasks': self.successful_tasks,
            'failedTasks': self.failed_tasks,
        }


@dataclass
class SyncAllResult:
    """Aggregated result of a full sync run."""
    success: bool
    total_duration_ms: int
    started_at: str
    completed_at: str
    tasks: List[SyncTaskResult] = field(default_factory=list)
    summary: SyncSummary = field(default_factory=SyncSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'totalDuration': self.total_duration_ms,
            'startedAt': self.started_at,
            'completedAt': self.completed_at,
            'tasks': [task.to_dict() for task in self.tasks],
            'summary': self.summary.to_dict(),
        }
