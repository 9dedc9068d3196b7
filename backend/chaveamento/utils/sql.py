"""
SQL utilities for consistent handling of query results.

SQLModel/SQLAlchemy may return COUNT results as int or as a 1-tuple/Row.
Use scalar_int() to safely coerce to int everywhere. Compare-and-swap writes
read their outcome through affected_rows().
"""
from typing import Any


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except (TypeError, IndexError, KeyError):
        return int(x)


def affected_rows(result: Any) -> int:
    """Row count of an UPDATE/DELETE result; -1 when the driver cannot tell."""
    rowcount = getattr(result, "rowcount", None)
    return -1 if rowcount is None else int(rowcount)
