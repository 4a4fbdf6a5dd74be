"""
Unit Tests for the Natural-Key Upsert Helpers
"""

import unittest

from jira_sync.database.models import IssueLabel, JiraIssue, JiraLabel, JiraStatus
from jira_sync.database.upsert import find_by_source_id, replace_child_rows, resolve, upsert

from factories import make_db


class TestResolve(unittest.TestCase):

    def setUp(self):
        self.db = make_db()

    def test_creates_once_then_returns_same_id(self):
        with self.db.session_scope() as session:
            first = resolve(session, JiraStatus, '3', {'name': 'In Progress'})
        with self.db.session_scope() as session:
            second = resolve(session, JiraStatus, 3, {'name': 'Renamed'})
            status = session.get(JiraStatus, second)
            name = status.name
            count = session.query(JiraStatus).count()

        self.assertEqual(first, second)
        # Existing rows are never overwritten
        self.assertEqual(name, 'In Progress')
        self.assertEqual(count, 1)

    def test_requires_source_id(self):
        with self.db.session_scope() as session:
            with self.assertRaises(ValueError):
                resolve(session, JiraStatus, None, {'name': 'x'})

    def test_find_by_source_id_coerces_to_string(self):
        with self.db.session_scope() as session:
            resolve(session, JiraStatus, '10000', {'name': 'Done'})
            self.assertIsNotNone(find_by_source_id(session, JiraStatus, 10000))
            self.assertIsNone(find_by_source_id(session, JiraStatus, None))


class TestUpsert(unittest.TestCase):

    def setUp(self):
        self.db = make_db()

    def test_insert_then_update(self):
        with self.db.session_scope() as session:
            _, created = upsert(session, JiraStatus, '3', {'name': 'In Progress'})
        self.assertTrue(created)

        with self.db.session_scope() as session:
            row, created = upsert(session, JiraStatus, '3', {'name': 'Doing'})
            self.assertFalse(created)
            self.assertEqual(row.name, 'Doing')
            self.assertEqual(session.query(JiraStatus).count(), 1)


class TestReplaceChildRows(unittest.TestCase):

    def setUp(self):
        self.db = make_db()
        with self.db.session_scope() as session:
            issue, _ = upsert(session, JiraIssue, '1', {'key': 'GGQPA-1'})
            self.issue_id = issue.id
            labels = [JiraLabel(name=name) for name in ('a', 'b', 'c')]
            session.add_all(labels)
            session.flush()
            self.label_ids = [label.id for label in labels]

    def label_rows(self):
        with self.db.session_scope() as session:
            return sorted(
                row.label_id for row in
                session.query(IssueLabel).filter(IssueLabel.issue_id == self.issue_id)
            )

    def test_replaces_whole_set(self):
        with self.db.session_scope() as session:
            replace_child_rows(session, IssueLabel, self.issue_id, [{'label_id': i} for i in self.label_ids])
        with self.db.session_scope() as session:
            inserted = replace_child_rows(session, IssueLabel, self.issue_id, [{'label_id': self.label_ids[0]}])

        self.assertEqual(inserted, 1)
        self.assertEqual(self.label_rows(), [self.label_ids[0]])

    def test_empty_set_clears(self):
        with self.db.session_scope() as session:
            replace_child_rows(session, IssueLabel, self.issue_id, [{'label_id': self.label_ids[1]}])
        with self.db.session_scope() as session:
            replace_child_rows(session, IssueLabel, self.issue_id, [])
        self.assertEqual(self.label_rows(), [])

    def test_rollback_keeps_previous_set(self):
        with self.db.session_scope() as session:
            replace_child_rows(session, IssueLabel, self.issue_id, [{'label_id': self.label_ids[1]}])

        with self.assertRaises(RuntimeError):
            with self.db.session_scope() as session:
                replace_child_rows(session, IssueLabel, self.issue_id, [{'label_id': self.label_ids[2]}])
                raise RuntimeError('failure after replace')

        self.assertEqual(self.label_rows(), [self.label_ids[1]])


if __name__ == '__main__':
    unittest.main()
