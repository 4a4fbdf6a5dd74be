"""
Sprints Sync Module
Imports the sprints of every sprint-capable board already in the warehouse.
"""

from typing import Dict, List

from sqlalchemy.orm import Session

from jira_sync.database.models import JiraBoard, JiraSprint, JiraSprintBoard
from jira_sync.database.upsert import upsert
from jira_sync.jira_client import JiraAPIError
from jira_sync.sync.base import SyncPreconditionError, SyncTask
from jira_sync.sync.types import SyncCounts, SyncTaskResult
from jira_sync.utils.helpers import format_progress, parse_jira_timestamp, should_log_progress
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)

NO_BOARDS_MESSAGE = "No Boards found that support Sprints, please sync Projects and Boards data first"


class SprintsSyncTask(SyncTask):
    """Sync sprints for boards with ``supports_sprints`` and ``api_accessible`` set."""

    task_name = 'Sprints'

    def execute(self) -> SyncTaskResult:
        boards = self._load_boards()
        logger.info(f"[{self.task_name}] Found {len(boards)} Boards that support Sprints from database")

        if not boards:
            raise SyncPreconditionError(NO_BOARDS_MESSAGE)

        sprints = self._fetch_sprints(boards)
        logger.info(f"[{self.task_name}] Total {len(sprints)} Sprints fetched, starting database sync...")

        counts = SyncCounts()
        for i, sprint in enumerate(sprints):
            if should_log_progress(i, len(sprints), self.progress_interval):
                logger.info(f"[{self.task_name}] Syncing Sprint {format_progress(i + 1, len(sprints))}")

            try:
                with self.db.session_scope() as session:
                    created = self._upsert_sprint(session, sprint)
                counts.record(created)
            except Exception as e:
                logger.error(f"[{self.task_name}] Failed to sync Sprint: {sprint.get('name')} ({sprint.get('id')}): {e}")
                counts.errors += 1

        return SyncTaskResult.completed(
            self.task_name,
            counts,
            f"Created {counts.created}, updated {counts.updated}",
            details={'totalBoards': len(boards), 'totalSprints': len(sprints)}
        )

    def _load_boards(self) -> List[Dict]:
        with self.db.session_scope() as session:
            rows = (
                session.query(JiraBoard)
                .filter(JiraBoard.supports_sprints.is_(True), JiraBoard.api_accessible.is_(True))
                .order_by(JiraBoard.id)
                .all()
            )
            return [{'id': row.id, 'source_id': row.source_id, 'name': row.name} for row in rows]

    def _fetch_sprints(self, boards: List[Dict]) -> List[Dict]:
        """Fetch sprints board by board; a failing board is skipped."""
        sprints = []
        max_results = self.page_size('sprints_page_size', 1000)

        for index, board in enumerate(boards):
            try:
                board_sprints = self.jira.fetch_sprints(board['source_id'], max_results=max_results)
            except JiraAPIError as e:
                logger.error(
                    f"[{self.task_name}] Failed to fetch Sprints for Board {board['source_id']}: "
                    f"{e.status_code} {e.message}"
                )
                continue

            for sprint in board_sprints:
                sprints.append({
                    **sprint,
                    'boardId': board['source_id'],
                    'boardDbId': board['id'],
                    'boardName': board['name'],
                })

            if should_log_progress(index, len(boards), self.progress_interval):
                logger.info(f"[{self.task_name}] Board processing progress: {format_progress(index + 1, len(boards))}")

        return sprints

    def _upsert_sprint(self, session: Session, data: Dict) -> bool:
        if data.get('id') is None:
            raise ValueError("Sprint payload has no id")

        values = {
            'board_id': data['boardDbId'],
            'name': data.get('name'),
            'state': data.get('state'),
            'start_date': parse_jira_timestamp(data.get('startDate')),
            'end_date': parse_jira_timestamp(data.get('endDate')),
            'complete_date': parse_jira_timestamp(data.get('completeDate')),
        }
        sprint, created = upsert(session, JiraSprint, data['id'], values)

        link = (
            session.query(JiraSprintBoard)
            .filter(JiraSprintBoard.sprint_id == sprint.id, JiraSprintBoard.board_id == data['boardDbId'])
            .first()
        )
        if link is None:
            session.add(JiraSprintBoard(sprint_id=sprint.id, board_id=data['boardDbId']))

        return created
