# Overview: Service-layer helpers for concurrent writes against shared rows.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _write_or_conflict(write, code: str, message: str, resolve) -> None:
    try:
        write()
    except (IntegrityError, StaleDataError):
        db.session.rollback()
        if resolve is not None:
            specific = resolve()
            if specific:
                code, message = specific
        raise ConflictError(message, code)


def commit_or_conflict(code: str, message: str, *, resolve=None) -> None:
    """
    Commit the current session, mapping races to a domain conflict.

    IntegrityError comes from the partial unique indexes that back the
    one-OPEN-drawer / one-ACTIVE-shift invariants; StaleDataError comes from
    optimistic version checks on drawers and shifts. Either way nothing was
    written, and the caller gets the same ConflictError it would have
    received had the service-level check seen the competing row first.

    resolve, if given, is called after rollback and may return a more
    specific (code, message) pair by re-reading the committed state.

    Writes are not retried: the precondition must be re-evaluated by the
    caller.
    """
    _write_or_conflict(db.session.commit, code, message, resolve)


def flush_or_conflict(code: str, message: str, *, resolve=None) -> None:
    """Flush mid-transaction with the same race mapping as commit_or_conflict; rolls back the whole transaction."""
    _write_or_conflict(db.session.flush, code, message, resolve)
