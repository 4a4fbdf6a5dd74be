"""
Unit Tests for the Users, Projects, Custom Fields and Sprints Sync Tasks
Jira is mocked; the warehouse is in-memory SQLite.
"""

import unittest
from datetime import datetime

from jira_sync.database.models import (
    JiraBoard, JiraCustomField, JiraProject, JiraSprint, JiraSprintBoard, JiraUser
)
from jira_sync.jira_client import JiraAPIError
from jira_sync.sync.custom_fields import CustomFieldsSyncTask
from jira_sync.sync.projects import ProjectsSyncTask
from jira_sync.sync.sprints import SprintsSyncTask
from jira_sync.sync.users import UsersSyncTask

from factories import (
    SYNC_CONFIG, board_payload, make_db, make_jira, project_payload,
    sprint_payload, user_payload
)


class TestUsersSync(unittest.TestCase):

    def setUp(self):
        self.db = make_db()

    def run_task(self, users):
        jira = make_jira(fetch_users=users)
        return UsersSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

    def test_only_active_users_are_stored(self):
        result = self.run_task([
            user_payload('acc-1', 'Ada', email='ada@example.com'),
            user_payload('acc-2', 'Bob', active=False),
            user_payload('acc-3', 'Cy'),
        ])

        self.assertTrue(result.success)
        self.assertEqual(result.created, 2)
        self.assertEqual(result.details, {'totalUsers': 2, 'fetchedUsers': 3})

        with self.db.session_scope() as session:
            users = {u.account_id: u for u in session.query(JiraUser)}
            self.assertEqual(set(users), {'acc-1', 'acc-3'})
            self.assertEqual(users['acc-1'].email, 'ada@example.com')
            # No emailAddress: falls back to the display name
            self.assertEqual(users['acc-3'].email, 'Cy')
            self.assertEqual(users['acc-3'].source_id, 'acc-3')

    def test_second_run_updates(self):
        self.run_task([user_payload('acc-1', 'Ada')])
        result = self.run_task([user_payload('acc-1', 'Ada Lovelace')])

        self.assertEqual((result.created, result.updated), (0, 1))
        with self.db.session_scope() as session:
            self.assertEqual(session.query(JiraUser).one().name, 'Ada Lovelace')

    def test_bad_record_is_counted_and_skipped(self):
        result = self.run_task([{'displayName': 'No account', 'active': True}, user_payload('acc-1')])

        self.assertTrue(result.success)
        self.assertEqual((result.created, result.errors), (1, 1))

    def test_api_failure_fails_task(self):
        jira = make_jira()
        jira.fetch_users.side_effect = JiraAPIError('Authentication failed.', 401, {'message': 'nope'})
        result = UsersSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

        self.assertFalse(result.success)
        self.assertEqual(result.errors, 1)
        self.assertEqual(result.details, {'statusCode': 401, 'response': {'message': 'nope'}})


class TestProjectsSync(unittest.TestCase):

    def setUp(self):
        self.db = make_db()
        self.jira = make_jira(fetch_projects=[
            project_payload(10001, 'GGQPA'),
            project_payload(10002, 'GGAHTP'),
        ])
        self.boards = {
            'GGQPA': [board_payload(1, 'QPA scrum'), board_payload(2, 'QPA kanban', 'kanban')],
            'GGAHTP': [board_payload(3, 'AHTP scrum')],
        }
        self.jira.fetch_boards.side_effect = lambda project_key, max_results: self.boards[project_key]

    def run_task(self):
        return ProjectsSyncTask(jira=self.jira, db=self.db, sync_config=SYNC_CONFIG).run()

    def test_projects_and_boards_stored(self):
        result = self.run_task()

        self.assertTrue(result.success)
        self.assertEqual(result.created, 5)
        self.assertEqual(result.details['projectResults'], {'created': 2, 'updated': 0, 'errors': 0})
        self.assertEqual(result.details['boardResults'], {'created': 3, 'updated': 0, 'errors': 0})
        self.jira.fetch_projects.assert_called_once_with(category_id='10003', max_results=1000)

        with self.db.session_scope() as session:
            project = session.query(JiraProject).filter_by(key='GGQPA').one()
            self.assertEqual(project.total_issue_count, 12)
            self.assertEqual(project.last_issue_update_time, datetime(2026, 1, 20, 10, 0))
            self.assertTrue(project.allowlisted)

            boards = {b.source_id: b for b in session.query(JiraBoard)}
            self.assertTrue(boards['1'].supports_sprints)
            self.assertFalse(boards['2'].supports_sprints)
            self.assertEqual(boards['3'].project_id, session.query(JiraProject).filter_by(key='GGAHTP').one().id)

    def test_idempotent(self):
        self.run_task()
        result = self.run_task()

        self.assertEqual((result.created, result.updated), (0, 5))
        with self.db.session_scope() as session:
            self.assertEqual(session.query(JiraProject).count(), 2)
            self.assertEqual(session.query(JiraBoard).count(), 3)

    def test_board_fetch_failure_skips_project(self):
        def fetch_boards(project_key, max_results):
            if project_key == 'GGQPA':
                raise JiraAPIError('Access forbidden. Check permissions.', 403)
            return self.boards[project_key]

        self.jira.fetch_boards.side_effect = fetch_boards
        result = self.run_task()

        self.assertTrue(result.success)
        self.assertEqual(result.details['totalBoards'], 1)


class TestCustomFieldsSync(unittest.TestCase):

    def setUp(self):
        self.db = make_db()

    def run_task(self, fields):
        jira = make_jira(fetch_fields=fields)
        return CustomFieldsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

    def test_only_custom_fields_stored(self):
        result = self.run_task([
            {'id': 'summary', 'name': 'Summary', 'custom': False},
            {'id': 'customfield_10016', 'name': 'Story point estimate', 'custom': True},
            {'id': 'customfield_10020', 'name': 'Sprint', 'custom': True},
        ])

        self.assertTrue(result.success)
        self.assertEqual(result.created, 2)
        self.assertEqual(result.details, {'totalFields': 3, 'customFields': 2})

    def test_no_custom_fields(self):
        result = self.run_task([{'id': 'summary', 'name': 'Summary', 'custom': False}])

        self.assertTrue(result.success)
        self.assertEqual(result.message, 'No custom fields found')
        self.assertEqual(result.created, 0)

    def test_matches_existing_row_by_name(self):
        self.run_task([{'id': 'customfield_10016', 'name': 'Story Points', 'custom': True}])
        result = self.run_task([{'id': 'customfield_10036', 'name': 'Story Points', 'custom': True}])

        self.assertEqual((result.created, result.updated), (0, 1))
        with self.db.session_scope() as session:
            self.assertEqual(session.query(JiraCustomField).one().source_id, 'customfield_10036')

    def test_fields_sharing_a_name_keep_their_own_rows(self):
        fields = [
            {'id': 'customfield_10016', 'name': 'Story Points', 'custom': True},
            {'id': 'customfield_10036', 'name': 'Story Points', 'custom': True},
        ]
        first = self.run_task(fields)
        second = self.run_task(fields)

        self.assertEqual((first.created, first.updated), (2, 0))
        self.assertEqual((second.created, second.updated), (0, 2))
        with self.db.session_scope() as session:
            keys = sorted(f.source_id for f in session.query(JiraCustomField))
            self.assertEqual(keys, ['customfield_10016', 'customfield_10036'])


class TestSprintsSync(unittest.TestCase):

    def setUp(self):
        self.db = make_db()

    def seed_boards(self):
        with self.db.session_scope() as session:
            project = JiraProject(source_id='10001', key='GGQPA', name='QPA')
            session.add(project)
            session.flush()
            session.add_all([
                JiraBoard(source_id='1', name='Scrum', board_type='scrum', project_id=project.id,
                          supports_sprints=True, api_accessible=True),
                JiraBoard(source_id='2', name='Kanban', board_type='kanban', project_id=project.id,
                          supports_sprints=False, api_accessible=True),
                JiraBoard(source_id='3', name='Other scrum', board_type='scrum', project_id=project.id,
                          supports_sprints=True, api_accessible=True),
            ])

    def test_requires_boards(self):
        jira = make_jira()
        result = SprintsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

        self.assertFalse(result.success)
        self.assertEqual(result.errors, 1)
        self.assertEqual(
            result.message,
            'No Boards found that support Sprints, please sync Projects and Boards data first'
        )
        jira.fetch_sprints.assert_not_called()

    def test_sprints_stored_with_board_links(self):
        self.seed_boards()
        jira = make_jira()
        # Sprint 100 is shared by both scrum boards
        jira.fetch_sprints.side_effect = lambda board_id, max_results: {
            '1': [sprint_payload(100, 'Sprint 1'), sprint_payload(101, 'Sprint 2', 'active')],
            '3': [sprint_payload(100, 'Sprint 1')],
        }[board_id]

        result = SprintsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

        self.assertTrue(result.success)
        self.assertEqual((result.created, result.updated), (2, 1))
        self.assertEqual(result.details, {'totalBoards': 2, 'totalSprints': 3})

        with self.db.session_scope() as session:
            self.assertEqual(session.query(JiraSprint).count(), 2)
            self.assertEqual(session.query(JiraSprintBoard).count(), 3)
            sprint = session.query(JiraSprint).filter_by(source_id='101').one()
            self.assertEqual(sprint.state, 'active')
            self.assertEqual(sprint.start_date, datetime(2026, 1, 5, 9, 0))

    def test_second_run_adds_no_links(self):
        self.seed_boards()
        jira = make_jira()
        jira.fetch_sprints.return_value = [sprint_payload(100)]

        SprintsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()
        result = SprintsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

        self.assertEqual(result.created, 0)
        with self.db.session_scope() as session:
            self.assertEqual(session.query(JiraSprintBoard).count(), 2)

    def test_board_failure_is_skipped(self):
        self.seed_boards()
        jira = make_jira()

        def fetch_sprints(board_id, max_results):
            if board_id == '1':
                raise JiraAPIError('Resource not found: agile/1.0/board/1/sprint', 404)
            return [sprint_payload(200)]

        jira.fetch_sprints.side_effect = fetch_sprints
        result = SprintsSyncTask(jira=jira, db=self.db, sync_config=SYNC_CONFIG).run()

        self.assertTrue(result.success)
        self.assertEqual(result.created, 1)


if __name__ == '__main__':
    unittest.main()
