"""
Issues Sync Module
Imports issues of the allow-listed projects together with their labels,
sprint links, custom field values and status timeline.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from jira_sync.database.models import (
    IssueCustomFieldValue, IssueLabel, IssueSprint, IssueStatusChange,
    JiraCustomField, JiraIssue, JiraIssueType, JiraLabel, JiraPriority,
    JiraProject, JiraResolution, JiraSprint, JiraStatus, JiraUser,
    SprintPlannedIssue
)
from jira_sync.database.upsert import find_by_source_id, replace_child_rows, resolve, upsert
from jira_sync.sync.base import SyncPreconditionError, SyncTask
from jira_sync.sync.changelog import ChangelogFacts, ChangelogReconstructor
from jira_sync.sync.types import SyncCounts, SyncTaskResult
from jira_sync.utils.helpers import (
    extract_sprint_id, first_non_null, format_progress, parse_jira_date,
    parse_jira_timestamp, safe_get, sanitize_string, serialize_field_value,
    should_log_progress, to_utc_naive
)
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PROJECT_KEYS = ['GGQPA', 'GGAHTP']
DEFAULT_STORY_POINT_FIELDS = ['customfield_10036', 'customfield_10016']
DEFAULT_SPRINT_FIELD = 'customfield_10020'
CUSTOM_FIELD_PREFIX = 'customfield_'

NO_PROJECTS_MESSAGE = "No projects found in database, please sync project data first"


@dataclass
class IssueSyncContext:
    """Lookup maps loaded once per run and shared by every issue."""
    custom_fields: Dict[str, int] = field(default_factory=dict)
    statuses: Dict[str, int] = field(default_factory=dict)
    reconstructor: ChangelogReconstructor = field(default_factory=ChangelogReconstructor)
    story_point_fields: List[str] = field(default_factory=lambda: list(DEFAULT_STORY_POINT_FIELDS))
    sprint_field: str = DEFAULT_SPRINT_FIELD


class IssuesSyncTask(SyncTask):
    """
    Sync issues for every allow-listed project found in the warehouse.

    Each issue is written in its own transaction: the issue row and the
    replacement of all of its child rows commit together or not at all.
    Users are looked up only; an assignee who has not been synced yet is
    stored as NULL.
    """

    task_name = 'Issues'

    def execute(self) -> SyncTaskResult:
        context = self._build_context()
        logger.info(
            f"[{self.task_name}] Preloaded {len(context.custom_fields)} custom fields "
            f"and {len(context.statuses)} statuses"
        )

        projects = self._load_projects()
        if not projects:
            raise SyncPreconditionError(NO_PROJECTS_MESSAGE)

        logger.info(
            f"[{self.task_name}] Syncing issues for projects: {', '.join(p['key'] for p in projects)}"
        )

        counts = SyncCounts()
        total_issues = 0
        max_results = self.page_size('issues_page_size', 100)

        for project in projects:
            issues = self.jira.fetch_issues(
                f"project={project['key']}",
                max_results=max_results,
                expand=['changelog']
            )
            total_issues += len(issues)
            logger.info(f"[{self.task_name}] Project {project['key']}: {len(issues)} issues fetched")

            counts = counts.add(self._sync_project_issues(project, issues, context))

        return SyncTaskResult.completed(
            self.task_name,
            counts,
            f"Created {counts.created}, updated {counts.updated}",
            details={'totalProjects': len(projects), 'totalIssues': total_issues}
        )

    def _build_context(self) -> IssueSyncContext:
        with self.db.session_scope() as session:
            custom_fields = {row.source_id: row.id for row in session.query(JiraCustomField).all()}
            statuses = {row.source_id: row.id for row in session.query(JiraStatus).all()}

        return IssueSyncContext(
            custom_fields=custom_fields,
            statuses=statuses,
            reconstructor=ChangelogReconstructor.from_config(self.sync_config),
            story_point_fields=list(self.sync_config.get('story_point_fields') or DEFAULT_STORY_POINT_FIELDS),
            sprint_field=self.sync_config.get('sprint_field') or DEFAULT_SPRINT_FIELD
        )

    def _load_projects(self) -> List[Dict]:
        project_keys = self.sync_config.get('project_keys') or DEFAULT_PROJECT_KEYS
        with self.db.session_scope() as session:
            rows = (
                session.query(JiraProject)
                .filter(JiraProject.key.in_(project_keys))
                .order_by(JiraProject.id)
                .all()
            )
            return [{'id': row.id, 'source_id': row.source_id, 'key': row.key} for row in rows]

    def _sync_project_issues(self, project: Dict, issues: List[Dict], context: IssueSyncContext) -> SyncCounts:
        counts = SyncCounts()
        for i, issue in enumerate(issues):
            if should_log_progress(i, len(issues), self.progress_interval):
                logger.info(
                    f"[{self.task_name}] Syncing {project['key']} issue {format_progress(i + 1, len(issues))}"
                )

            try:
                with self.db.session_scope() as session:
                    created, status_entry = self._upsert_issue(session, issue, context)
                counts.record(created)
                # Only committed statuses join the shared map
                if status_entry:
                    context.statuses.setdefault(*status_entry)
            except Exception as e:
                logger.error(f"[{self.task_name}] Failed to sync issue {issue.get('key')} ({issue.get('id')}): {e}")
                counts.errors += 1
        return counts

    # ========================================
    # Issue row
    # ========================================

    def _upsert_issue(
        self,
        session: Session,
        data: Dict,
        context: IssueSyncContext
    ) -> Tuple[bool, Optional[Tuple[str, int]]]:
        """
        Write one issue and replace its child rows.

        Returns:
            Tuple of (created, (status source id, status row id) or None)
        """
        if data.get('id') is None:
            raise ValueError("Issue payload has no id")

        fields = data.get('fields') or {}
        facts = context.reconstructor.reconstruct(data.get('changelog'))

        project_id = self._resolve_project(session, fields.get('project'))
        issue_type_id = self._resolve_issue_type(session, fields.get('issuetype'), project_id)
        status_id = self._resolve_status(session, fields.get('status'))
        story_points = self._story_points(fields, context.story_point_fields)

        values = {
            'key': data.get('key'),
            'summary': sanitize_string(fields.get('summary')),
            'source_url': data.get('self'),
            'project_id': project_id,
            'issue_type_id': issue_type_id,
            'status_id': status_id,
            'priority_id': self._resolve_named(session, JiraPriority, fields.get('priority')),
            'resolution_id': self._resolve_named(session, JiraResolution, fields.get('resolution')),
            'assignee_id': self._find_user_id(session, fields.get('assignee')),
            'creator_id': self._find_user_id(session, fields.get('creator')),
            'parent_key': safe_get(fields, 'parent', 'key'),
            'story_points': story_points,
            'created_date': parse_jira_timestamp(fields.get('created')),
            'updated_date': parse_jira_timestamp(fields.get('updated')),
            'resolution_date': parse_jira_timestamp(fields.get('resolutiondate')),
            'due_date': parse_jira_date(fields.get('duedate')),
            'started_at': to_utc_naive(facts.started_at),
            'completed_at': to_utc_naive(facts.completed_at),
            'synced_at': datetime.utcnow(),
        }
        issue, created = upsert(session, JiraIssue, data['id'], values)

        statuses = dict(context.statuses)
        status_entry = None
        if status_id is not None:
            status_entry = (str(fields['status']['id']), status_id)
            statuses.setdefault(*status_entry)

        self._replace_labels(session, issue.id, fields.get('labels'))
        self._replace_sprints(session, issue.id, project_id, story_points, fields.get(context.sprint_field))
        self._replace_custom_field_values(session, issue.id, fields, context.custom_fields)
        self._replace_status_changes(session, issue.id, facts, statuses)

        return created, status_entry

    def _resolve_project(self, session: Session, project: Optional[Dict]) -> Optional[int]:
        if not project or project.get('id') is None:
            return None
        return resolve(session, JiraProject, project['id'], {
            'key': project.get('key'),
            'name': project.get('name') or project.get('key'),
            'project_type_key': project.get('projectTypeKey'),
        })

    def _resolve_issue_type(self, session: Session, issue_type: Optional[Dict], project_id: Optional[int]) -> Optional[int]:
        if not issue_type or issue_type.get('id') is None:
            return None
        return resolve(session, JiraIssueType, issue_type['id'], {
            'name': issue_type.get('name'),
            'description': issue_type.get('description'),
            'hierarchy_level': issue_type.get('hierarchyLevel'),
            'project_id': project_id,
        })

    def _resolve_status(self, session: Session, status: Optional[Dict]) -> Optional[int]:
        if not status or status.get('id') is None:
            return None
        return resolve(session, JiraStatus, status['id'], {
            'name': status.get('name'),
            'description': status.get('description'),
            'status_category': safe_get(status, 'statusCategory', 'name'),
        })

    @staticmethod
    def _resolve_named(session: Session, model, data: Optional[Dict]) -> Optional[int]:
        """Resolve a priority or resolution reference."""
        if not data or data.get('id') is None:
            return None
        fields_if_creating = {'name': data.get('name')}
        if data.get('description') is not None:
            fields_if_creating['description'] = data['description']
        return resolve(session, model, data['id'], fields_if_creating)

    @staticmethod
    def _find_user_id(session: Session, user: Optional[Dict]) -> Optional[int]:
        if not user or not user.get('accountId'):
            return None
        row = session.query(JiraUser).filter(JiraUser.account_id == user['accountId']).first()
        return row.id if row else None

    @staticmethod
    def _story_points(fields: Dict, candidates: List[str]) -> Optional[float]:
        value = first_non_null(fields, candidates)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric story points value: {value!r}")
            return None

    # ========================================
    # Child relations
    # ========================================

    def _replace_labels(self, session: Session, issue_id: int, labels: Optional[List[str]]) -> None:
        label_ids = []
        for name in labels or []:
            if not name:
                continue
            label = session.query(JiraLabel).filter(JiraLabel.name == name).first()
            if label is None:
                label = JiraLabel(name=name)
                session.add(label)
                session.flush()
            if label.id not in label_ids:
                label_ids.append(label.id)

        replace_child_rows(session, IssueLabel, issue_id, [{'label_id': label_id} for label_id in label_ids])

    def _replace_sprints(
        self,
        session: Session,
        issue_id: int,
        project_id: Optional[int],
        story_points: Optional[float],
        sprint_refs: Any
    ) -> None:
        if sprint_refs is None:
            sprint_refs = []
        elif not isinstance(sprint_refs, list):
            sprint_refs = [sprint_refs]

        sprint_ids = []
        for ref in sprint_refs:
            source_id = extract_sprint_id(ref)
            if source_id is None:
                continue
            sprint = find_by_source_id(session, JiraSprint, source_id)
            if sprint is None:
                logger.debug(f"[{self.task_name}] Sprint {source_id} not in warehouse, skipping link")
                continue
            if sprint.id not in sprint_ids:
                sprint_ids.append(sprint.id)

        replace_child_rows(session, IssueSprint, issue_id, [
            {
                'sprint_id': sprint_id,
                'project_id': project_id,
                'planned': True,
                'planned_points': story_points,
            }
            for sprint_id in sprint_ids
        ])

        for sprint_id in sprint_ids:
            planned = (
                session.query(SprintPlannedIssue)
                .filter(SprintPlannedIssue.sprint_id == sprint_id, SprintPlannedIssue.issue_id == issue_id)
                .first()
            )
            if planned is None:
                session.add(SprintPlannedIssue(sprint_id=sprint_id, issue_id=issue_id))

    @staticmethod
    def _replace_custom_field_values(
        session: Session,
        issue_id: int,
        fields: Dict,
        custom_fields: Dict[str, int]
    ) -> None:
        rows = [
            {'custom_field_id': custom_fields[key], 'value': serialize_field_value(value)}
            for key, value in fields.items()
            if key.startswith(CUSTOM_FIELD_PREFIX) and value is not None and key in custom_fields
        ]
        replace_child_rows(session, IssueCustomFieldValue, issue_id, rows)

    @staticmethod
    def _replace_status_changes(
        session: Session,
        issue_id: int,
        facts: ChangelogFacts,
        statuses: Dict[str, int]
    ) -> None:
        rows = [
            {
                'status_id': statuses[transition.status_source_id],
                'status_change_date': to_utc_naive(transition.changed_at),
            }
            for transition in facts.transitions
            if transition.status_source_id in statuses
        ]
        replace_child_rows(session, IssueStatusChange, issue_id, rows)
