"""
Custom Fields Sync Module
Imports the custom field catalog used to store per-issue field values.
"""

from typing import Dict, Set

from jira_sync.database.models import JiraCustomField
from jira_sync.sync.base import SyncTask
from jira_sync.sync.types import SyncCounts, SyncTaskResult
from jira_sync.utils.helpers import format_progress, should_log_progress
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)


class CustomFieldsSyncTask(SyncTask):
    """Sync custom field definitions (``custom == true`` fields only)."""

    task_name = 'CustomFields'

    def execute(self) -> SyncTaskResult:
        all_fields = self.jira.fetch_fields()
        custom_fields = [field for field in all_fields if field.get('custom') is True]

        logger.info(
            f"[{self.task_name}] Fetched {len(all_fields)} fields, {len(custom_fields)} are custom fields"
        )

        details = {'totalFields': len(all_fields), 'customFields': len(custom_fields)}

        if not custom_fields:
            logger.info(f"[{self.task_name}] No custom fields found, sync completed")
            return SyncTaskResult.completed(self.task_name, SyncCounts(), "No custom fields found", details)

        current_keys = {field['id'] for field in custom_fields if field.get('id')}
        counts = SyncCounts()
        for i, field in enumerate(custom_fields):
            if should_log_progress(i, len(custom_fields), self.progress_interval):
                logger.info(f"[{self.task_name}] Syncing Custom Field {format_progress(i + 1, len(custom_fields))}")

            try:
                with self.db.session_scope() as session:
                    created = self._upsert_field(session, field, current_keys)
                counts.record(created)
            except Exception as e:
                logger.error(
                    f"[{self.task_name}] Failed to sync Custom Field: {field.get('name')} ({field.get('id')}): {e}"
                )
                counts.errors += 1

        return SyncTaskResult.completed(
            self.task_name,
            counts,
            f"Created {counts.created}, updated {counts.updated}",
            details
        )

    def _upsert_field(self, session, data: Dict, current_keys: Set[str]) -> bool:
        """
        Upsert a field by key, falling back to a name match.

        The name fallback only claims a row whose key is no longer in the
        fetched catalog, so a renamed key is reconciled while two live fields
        sharing a name keep separate rows.

        Returns True when a row was created.
        """
        field_key = data.get('id')
        if not field_key:
            raise ValueError("Field payload has no id")

        existing = session.query(JiraCustomField).filter_by(source_id=field_key).first()
        if existing is None and data.get('name'):
            existing = (
                session.query(JiraCustomField)
                .filter(JiraCustomField.name == data.get('name'))
                .filter(JiraCustomField.source_id.notin_(current_keys))
                .order_by(JiraCustomField.id)
                .first()
            )

        if existing:
            existing.source_id = field_key
            existing.name = data.get('name')
            return False

        session.add(JiraCustomField(source_id=field_key, name=data.get('name')))
        return True
