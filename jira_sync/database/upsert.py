"""
Natural-Key Upsert Helpers
Find-by-source-id-else-create resolution shared by every sync task.

These are read-then-write operations and are not atomic against concurrent
writers; the sync runs as a single writer.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple, Type

from sqlalchemy.orm import Session

from jira_sync.database.models import Base


def find_by_source_id(session: Session, model: Type[Base], source_id: Any) -> Optional[Base]:
    """Return the row of ``model`` whose source_id matches, or None."""
    if source_id is None:
        return None
    return session.query(model).filter(model.source_id == str(source_id)).first()


def resolve(
    session: Session,
    model: Type[Base],
    source_id: Any,
    fields_if_creating: Dict = None
) -> int:
    """
    Return the internal id for an external identity, creating the row if absent.

    Existing rows are returned untouched; ``fields_if_creating`` is only used
    for the insert.

    Args:
        session: Database session
        model: Model class with a ``source_id`` column
        source_id: External id
        fields_if_creating: Column values for a new row

    Returns:
        Internal row id
    """
    if source_id is None:
        raise ValueError(f"Cannot resolve {model.__name__} without a source id")

    row = find_by_source_id(session, model, source_id)
    if row is None:
        row = model(source_id=str(source_id), **(fields_if_creating or {}))
        session.add(row)
        session.flush()
    return row.id


def upsert(
    session: Session,
    model: Type[Base],
    source_id: Any,
    values: Dict
) -> Tuple[Base, bool]:
    """
    Update the row matching ``source_id`` with ``values``, or insert it.

    Returns:
        Tuple of (row, created)
    """
    row = find_by_source_id(session, model, source_id)
    created = row is None

    if created:
        row = model(source_id=str(source_id), **values)
        session.add(row)
    else:
        for column, value in values.items():
            setattr(row, column, value)
        row.row_updated_at = datetime.utcnow()

    session.flush()
    return row, created


def replace_child_rows(
    session: Session,
    model: Type[Base],
    issue_id: int,
    rows: Iterable[Dict]
) -> int:
    """
    Replace every ``model`` row of an issue with ``rows``.

    Deletes the issue's existing rows then inserts the new set in the same
    transaction, so the relation never keeps orphans or duplicates.

    Returns:
        Number of rows inserted
    """
    session.query(model).filter(model.issue_id == issue_id).delete(synchronize_session=False)

    count = 0
    for values in rows:
        session.add(model(issue_id=issue_id, **values))
        count += 1

    session.flush()
    return count
