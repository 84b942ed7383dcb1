from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector

from ..core.exceptions import TransientStoreError
from ..employees.model import LeaveBuckets
from .connection import DatabaseConnection

BUCKET_FIELDS = ("paid", "casual", "sick", "unpaid")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)``; commit on success, roll back on error.

    Driver errors surface as TransientStoreError so batch jobs can treat
    them as "retry on the next run".
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise TransientStoreError(f"Cannot connect to database: {exc}") from exc
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise TransientStoreError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def buckets_from_row(row: Dict[str, Any], prefix: str) -> LeaveBuckets:
    """Read ``<prefix>_paid``, ``<prefix>_casual``... columns into LeaveBuckets."""
    return LeaveBuckets(**{name: float(row.get(f"{prefix}_{name}") or 0) for name in BUCKET_FIELDS})


def buckets_params(buckets: LeaveBuckets) -> tuple:
    return tuple(float(getattr(buckets, name)) for name in BUCKET_FIELDS)
