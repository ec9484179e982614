"""
Helpers for classifying database errors.
"""

from sqlalchemy.exc import IntegrityError

# PostgreSQL SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """
    Check whether an IntegrityError was caused by a uniqueness constraint.

    PostgreSQL drivers expose the SQLSTATE code (``pgcode`` on psycopg2,
    ``sqlstate`` on psycopg 3); SQLite only reports it in the message.
    """
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == PG_UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)
