from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
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


def build_where(clauses: list[str]) -> str:
    return " AND ".join(clauses) if clauses else "1=1"


def set_clause(changes: dict, allowed: set[str]) -> tuple[str, list[Any]]:
    """Turn a {column: value} dict into "a=%s, b=%s" plus params, ignoring unknown columns."""
    cols = [c for c in changes if c in allowed]
    return ", ".join(f"{c}=%s" for c in cols), [changes[c] for c in cols]


def encode_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def decode_json(value: Any, *, column: str = "json") -> Any:
    """Decode a JSON text column; malformed content is logged and read as None."""
    if value is None or value == "":
        return None
    if isinstance(value, (list, dict)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Could not decode %s column: %r", column, value)
        return None


def add_date_range(clauses: list[str], params: list[Any], column: str, start: Any, end: Any) -> None:
    """Append inclusive `column` bounds for whichever of start/end is given."""
    if start is not None:
        clauses.append(f"{column} >= %s")
        params.append(start)
    if end is not None:
        clauses.append(f"{column} <= %s")
        params.append(end)
