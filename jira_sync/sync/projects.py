"""
Projects and Boards Sync Module
Imports the projects of the configured category and their agile boards.
"""

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from jira_sync.database.models import JiraBoard, JiraProject
from jira_sync.database.upsert import find_by_source_id, upsert
from jira_sync.jira_client import JiraAPIError
from jira_sync.sync.base import SyncTask
from jira_sync.sync.types import SyncCounts, SyncTaskResult
from jira_sync.utils.helpers import format_progress, parse_jira_timestamp, safe_get, should_log_progress
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)


class ProjectsSyncTask(SyncTask):
    """Sync projects (filtered by category) and the boards of each project."""

    task_name = 'Projects'

    def execute(self) -> SyncTaskResult:
        category_id = self.sync_config.get('project_category_id')
        projects = self.jira.fetch_projects(
            category_id=str(category_id) if category_id is not None else None,
            max_results=self.page_size('projects_page_size', 1000)
        )
        logger.info(f"[{self.task_name}] Total {len(projects)} Projects fetched")

        project_counts = self._sync_projects(projects)
        logger.info(
            f"[{self.task_name}] Projects sync completed: Created {project_counts.created}, "
            f"updated {project_counts.updated}, errors {project_counts.errors}"
        )

        boards = self._fetch_boards(projects)
        logger.info(f"[{self.task_name}] Total {len(boards)} related Boards fetched")

        board_counts = self._sync_boards(boards)
        total = project_counts.add(board_counts)

        return SyncTaskResult.completed(
            self.task_name,
            total,
            f"Projects: Created {project_counts.created}, updated {project_counts.updated}; "
            f"Boards: Created {board_counts.created}, updated {board_counts.updated}",
            details={
                'totalProjects': len(projects),
                'totalBoards': len(boards),
                'projectResults': project_counts.to_dict(),
                'boardResults': board_counts.to_dict(),
            }
        )

    # ========================================
    # Projects
    # ========================================

    def _sync_projects(self, projects: List[Dict]) -> SyncCounts:
        counts = SyncCounts()
        for i, project in enumerate(projects):
            if should_log_progress(i, len(projects), self.progress_interval):
                logger.info(f"[{self.task_name}] Syncing Project {format_progress(i + 1, len(projects))}")

            try:
                with self.db.session_scope() as session:
                    _, created = self._upsert_project(session, project)
                counts.record(created)
            except Exception as e:
                logger.error(
                    f"[{self.task_name}] Failed to sync Project: {project.get('name')} ({project.get('id')}): {e}"
                )
                counts.errors += 1
        return counts

    def _upsert_project(self, session: Session, data: Dict):
        if data.get('id') is None:
            raise ValueError("Project payload has no id")

        values = {
            'key': data.get('key'),
            'name': data.get('name'),
            'project_type_key': data.get('style'),
            'private': False,
            'total_issue_count': safe_get(data, 'insight', 'totalIssueCount'),
            'last_issue_update_time': parse_jira_timestamp(safe_get(data, 'insight', 'lastIssueUpdateTime')),
            'api_accessible': True,
            'allowlisted': True,
        }
        return upsert(session, JiraProject, data['id'], values)

    # ========================================
    # Boards
    # ========================================

    def _fetch_boards(self, projects: List[Dict]) -> List[Dict]:
        """Fetch boards project by project; a failing project is skipped."""
        boards = []
        max_results = self.page_size('boards_page_size', 1000)

        for index, project in enumerate(projects):
            project_key = project.get('key')
            try:
                project_boards = self.jira.fetch_boards(project_key=project_key, max_results=max_results)
            except JiraAPIError as e:
                logger.error(
                    f"[{self.task_name}] Failed to fetch Boards for Project {project_key}: "
                    f"{e.status_code} {e.message}"
                )
                continue

            for board in project_boards:
                boards.append({
                    **board,
                    'projectId': project.get('id'),
                    'projectKey': project_key,
                    'projectName': project.get('name'),
                })

            if should_log_progress(index, len(projects), self.progress_interval):
                logger.info(
                    f"[{self.task_name}] Project processing progress: {format_progress(index + 1, len(projects))}"
                )

        return boards

    def _sync_boards(self, boards: List[Dict]) -> SyncCounts:
        counts = SyncCounts()
        for i, board in enumerate(boards):
            if should_log_progress(i, len(boards), self.progress_interval):
                logger.info(f"[{self.task_name}] Syncing Board {format_progress(i + 1, len(boards))}")

            try:
                with self.db.session_scope() as session:
                    _, created = self._upsert_board(session, board)
                counts.record(created)
            except Exception as e:
                logger.error(f"[{self.task_name}] Failed to sync Board: {board.get('name')} ({board.get('id')}): {e}")
                counts.errors += 1
        return counts

    def _upsert_board(self, session: Session, data: Dict):
        if data.get('id') is None:
            raise ValueError("Board payload has no id")

        values = {
            'name': data.get('name'),
            'board_type': data.get('type'),
            'project_id': self._project_row_id(session, data.get('projectId')),
            'api_accessible': True,
            'supports_sprints': data.get('type') == 'scrum',
        }
        return upsert(session, JiraBoard, data['id'], values)

    @staticmethod
    def _project_row_id(session: Session, project_source_id) -> Optional[int]:
        project = find_by_source_id(session, JiraProject, project_source_id)
        return project.id if project else None
