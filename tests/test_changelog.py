"""
Unit Tests for Changelog Reconstruction
"""

import unittest
from datetime import datetime

import pytz

from jira_sync.sync.changelog import ChangelogReconstructor

from factories import status_history


def utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


class TestChangelogReconstructor(unittest.TestCase):

    def setUp(self):
        self.reconstructor = ChangelogReconstructor()

    def test_started_is_first_wins(self):
        changelog = {'histories': [
            status_history('2026-01-05T10:00:00.000+0000', '3', 'In Progress'),
            status_history('2026-01-06T10:00:00.000+0000', '1', 'To Do', '3', 'In Progress'),
            status_history('2026-01-07T10:00:00.000+0000', '3', 'In Progress'),
        ]}
        facts = self.reconstructor.reconstruct(changelog)
        self.assertEqual(facts.started_at, utc(2026, 1, 5, 10))

    def test_started_follows_scan_order_not_time(self):
        """Jira may return histories newest first; the first one scanned wins."""
        changelog = {'histories': [
            status_history('2026-01-07T10:00:00.000+0000', '3', 'In Progress'),
            status_history('2026-01-05T10:00:00.000+0000', '3', 'In Progress'),
        ]}
        facts = self.reconstructor.reconstruct(changelog)
        self.assertEqual(facts.started_at, utc(2026, 1, 7, 10))

    def test_completed_is_last_wins(self):
        changelog = {'histories': [
            status_history('2026-01-05T10:00:00.000+0000', '10000', 'Done', '3', 'In Progress'),
            status_history('2026-01-06T10:00:00.000+0000', '3', 'In Progress', '10000', 'Done'),
            status_history('2026-01-08T10:00:00.000+0000', '10000', 'Done', '3', 'In Progress'),
        ]}
        facts = self.reconstructor.reconstruct(changelog)
        self.assertEqual(facts.completed_at, utc(2026, 1, 8, 10))
        self.assertEqual(facts.started_at, utc(2026, 1, 6, 10))

    def test_transitions_recorded_in_order(self):
        changelog = {'histories': [
            status_history('2026-01-05T10:00:00.000+0000', '3', 'In Progress'),
            {
                'created': '2026-01-06T10:00:00.000+0000',
                'items': [
                    {'field': 'assignee', 'to': 'abc', 'toString': 'Someone'},
                    {'field': 'status', 'from': '3', 'to': '10000', 'toString': 'Done'},
                ]
            },
        ]}
        facts = self.reconstructor.reconstruct(changelog)
        self.assertEqual([t.status_source_id for t in facts.transitions], ['3', '10000'])
        self.assertEqual(facts.transitions[1].changed_at, utc(2026, 1, 6, 10))

    def test_histories_without_created_are_skipped(self):
        changelog = {'histories': [
            {'items': [{'field': 'status', 'to': '3', 'toString': 'In Progress'}]},
            status_history('2026-01-09T10:00:00.000+0000', '3', 'In Progress'),
        ]}
        facts = self.reconstructor.reconstruct(changelog)
        self.assertEqual(facts.started_at, utc(2026, 1, 9, 10))
        self.assertEqual(len(facts.transitions), 1)

    def test_missing_or_malformed_changelog(self):
        for changelog in (None, {}, {'histories': None}, {'histories': 'oops'}):
            facts = self.reconstructor.reconstruct(changelog)
            self.assertIsNone(facts.started_at)
            self.assertIsNone(facts.completed_at)
            self.assertEqual(facts.transitions, [])

    def test_status_names_from_config(self):
        reconstructor = ChangelogReconstructor.from_config({
            'changelog': {'started_status': 'Doing', 'completed_status': 'Closed'}
        })
        changelog = {'histories': [
            status_history('2026-01-05T10:00:00.000+0000', '3', 'In Progress'),
            status_history('2026-01-06T10:00:00.000+0000', '4', 'Doing'),
            status_history('2026-01-07T10:00:00.000+0000', '10000', 'Done'),
            status_history('2026-01-08T10:00:00.000+0000', '6', 'Closed'),
        ]}
        facts = reconstructor.reconstruct(changelog)
        self.assertEqual(facts.started_at, utc(2026, 1, 6, 10))
        self.assertEqual(facts.completed_at, utc(2026, 1, 8, 10))


if __name__ == '__main__':
    unittest.main()
