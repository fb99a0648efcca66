"""
Database helpers shared by the services
"""

import logging

from sqlalchemy.exc import IntegrityError

from spread_pickem import db

logger = logging.getLogger(__name__)


def insert_or_fetch(build, fetch):
    """
    Insert and commit a new row, recovering from a concurrent insert of the same row.

    ``build`` returns the unsaved model instance. ``fetch`` re-reads the row
    by its natural key. When the commit fails on a uniqueness constraint the
    failed insert is discarded and the row written by the other request is
    returned instead of the error. If that row still can't be found the
    IntegrityError propagates.

    Must run at the start of a unit of work: the recovery rolls back the
    whole session transaction.

    Returns:
        tuple: (instance, created)
    """
    instance = build()
    db.session.add(instance)

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(
            f"Concurrent insert detected for {type(instance).__name__}: {e.orig}"
        )

        existing = fetch()
        if existing is None:
            raise
        return existing, False

    return instance, True


def commit_or_rollback():
    """Commit the session, rolling back before re-raising on failure"""
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
