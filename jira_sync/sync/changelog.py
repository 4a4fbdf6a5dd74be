"""
Changelog Reconstruction Module
Derives work start/completion times and the status timeline from an issue's
changelog histories.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from jira_sync.utils.helpers import parse_jira_datetime

DEFAULT_STARTED_STATUS = 'In Progress'
DEFAULT_COMPLETED_STATUS = 'Done'


@dataclass
class StatusTransition:
    """A status change observed in the changelog."""
    status_source_id: str
    changed_at: datetime


@dataclass
class ChangelogFacts:
    """Point-in-time facts reconstructed from a changelog."""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    transitions: List[StatusTransition] = field(default_factory=list)


class ChangelogReconstructor:
    """
    Walks changelog histories in the order returned by Jira.

    ``started_at`` is the first move into the started status and is never
    overwritten. ``completed_at`` is the last move into the completed status,
    so a reopened and re-closed issue reports its latest completion. Status
    names are matched literally against the configured names.
    """

    def __init__(self, started_status: str = DEFAULT_STARTED_STATUS,
                 completed_status: str = DEFAULT_COMPLETED_STATUS):
        self.started_status = started_status
        self.completed_status = completed_status

    @classmethod
    def from_config(cls, sync_config: Dict) -> 'ChangelogReconstructor':
        changelog_config = (sync_config or {}).get('changelog') or {}
        return cls(
            started_status=changelog_config.get('started_status', DEFAULT_STARTED_STATUS),
            completed_status=changelog_config.get('completed_status', DEFAULT_COMPLETED_STATUS)
        )

    def reconstruct(self, changelog: Optional[Dict]) -> ChangelogFacts:
        facts = ChangelogFacts()

        histories = (changelog or {}).get('histories')
        if not isinstance(histories, list):
            return facts

        for history in histories:
            items = history.get('items')
            changed_at = parse_jira_datetime(history.get('created'))
            if not isinstance(items, list) or changed_at is None:
                continue

            for item in items:
                if item.get('field') != 'status':
                    continue

                to_string = item.get('toString')
                if to_string:
                    if to_string == self.started_status and facts.started_at is None:
                        facts.started_at = changed_at
                    if to_string == self.completed_status:
                        facts.completed_at = changed_at

                if item.get('to'):
                    facts.transitions.append(StatusTransition(str(item['to']), changed_at))

        return facts
