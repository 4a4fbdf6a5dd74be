"""
Users Sync Module
Imports active Jira users into the warehouse.
"""

from typing import Dict

from jira_sync.database.models import JiraUser
from jira_sync.sync.base import SyncTask
from jira_sync.sync.types import SyncCounts, SyncTaskResult
from jira_sync.utils.helpers import format_progress, should_log_progress
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)


class UsersSyncTask(SyncTask):
    """
    Sync Jira users keyed by account id.

    Inactive accounts are filtered out before the upsert, so a user who is
    deactivated keeps the state from their last active sync.
    """

    task_name = 'Users'

    def execute(self) -> SyncTaskResult:
        all_users = self.jira.fetch_users(max_results=self.page_size('users_page_size', 1000))
        active_users = [user for user in all_users if user.get('active')]

        logger.info(
            f"[{self.task_name}] Total {len(active_users)} active users fetched "
            f"({len(all_users)} total), starting database sync..."
        )

        counts = SyncCounts()
        for i, jira_user in enumerate(active_users):
            if should_log_progress(i, len(active_users), self.progress_interval):
                logger.info(f"[{self.task_name}] Syncing user {format_progress(i + 1, len(active_users))}")

            try:
                with self.db.session_scope() as session:
                    created = self._upsert_user(session, jira_user)
                counts.record(created)
            except Exception as e:
                logger.error(
                    f"[{self.task_name}] Failed to sync user: "
                    f"{jira_user.get('displayName')} ({jira_user.get('accountId')}): {e}"
                )
                counts.errors += 1

        return SyncTaskResult.completed(
            self.task_name,
            counts,
            f"Created {counts.created}, updated {counts.updated}, errors {counts.errors}",
            details={'totalUsers': len(active_users), 'fetchedUsers': len(all_users)}
        )

    def _upsert_user(self, session, data: Dict) -> bool:
        """Upsert a user by account id. Returns True when a row was created."""
        account_id = data.get('accountId')
        if not account_id:
            raise ValueError("User payload has no accountId")

        values = {
            # Jira hides emailAddress for most accounts
            'email': data.get('emailAddress') or data.get('name') or data.get('displayName'),
            'name': data.get('displayName'),
            'active': bool(data.get('active')),
        }

        user = session.query(JiraUser).filter(JiraUser.account_id == account_id).first()
        if user:
            for column, value in values.items():
                setattr(user, column, value)
            return False

        session.add(JiraUser(source_id=account_id, account_id=account_id, **values))
        return True
