# Overview: Service-layer operations for concurrency; row locks, retries and rollback-on-failure.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import EngineError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id columns on Product/Account/Order still turn a
    lost update into a StaleDataError, which run_with_retry handles.
    """
    return query.with_for_update()


def lock_rows(model, ids) -> dict:
    """
    Lock several rows of one model, always in ascending id order.

    Returns {id: row}. Missing ids are simply absent from the result.
    WHY ordering: two transactions locking overlapping product sets (e.g. two
    bundles sharing a component) must acquire locks in the same order or they
    can deadlock.
    """
    wanted = sorted(set(ids))
    if not wanted:
        return {}
    rows = (
        lock_for_update(db.session.query(model).filter(model.id.in_(wanted)))
        .populate_existing()
        .order_by(model.id)
        .all()
    )
    return {row.id: row for row in rows}


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Engine errors are not retried: the
    session is rolled back so nothing from the failed unit of work survives,
    and the error propagates to the caller.
    """
    if attempts is None:
        attempts = current_app.config.get("LOCK_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LOCK_RETRY_BACKOFF", 0.1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except EngineError:
            db.session.rollback()
            raise
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning("Concurrency conflict, retrying (attempt %s): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
