"""
Cursor-level helpers. Hide the differences between DB-API drivers
(paramstyle, cursors, transactions, row counts, generated ids, error codes).
"""
from typing import Any

from src.utils.db_connector import Driver


def translate_placeholders(sql: str, paramstyle: str) -> str:
    """
    Rewrite '?' placeholders for 'format' drivers (psycopg2); literal % is doubled.
    The rewrite is textual: a '?' inside a quoted string literal is rewritten too,
    so pass such values as bindings instead of inlining them.
    """
    if paramstyle == "format":
        return sql.replace("%", "%%").replace("?", "%s")
    return sql


def open_cursor(driver: Driver, conn):
    # DuckDB cursors are separate connections, so statements run on the connection itself
    if driver.shared_cursor:
        return conn
    return conn.cursor()


def close_cursor(driver: Driver, cursor) -> None:
    if cursor is None or driver.shared_cursor:
        return
    cursor.close()


def begin_transaction(driver: Driver, conn) -> None:
    """Open a transaction. Drivers without autocommit (psycopg2, pyodbc) already have one."""
    if driver.begin_method:
        conn.begin()
    elif driver.begin_sql:
        conn.execute(driver.begin_sql)


def result_columns(cursor) -> list[str]:
    return [desc[0] for desc in cursor.description] if cursor.description else []


def fetch_records(cursor) -> list[dict[str, Any]]:
    """All remaining rows as field-name -> value dicts."""
    columns = result_columns(cursor)
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def fetch_record(cursor) -> dict[str, Any] | None:
    """First row as a dict, or None."""
    columns = result_columns(cursor)
    row = cursor.fetchone()
    return dict(zip(columns, row)) if row is not None else None


def affected_rows(driver: Driver, cursor) -> int:
    """Rows touched by the last DML statement."""
    if driver.name == "duckdb":
        # DuckDB reports DML counts as a one-row result with a single "Count" column
        columns = result_columns(cursor)
        if columns != ["Count"]:
            return 0
        row = cursor.fetchone()
        return int(row[0]) if row and row[0] is not None else 0
    count = cursor.rowcount
    return count if count and count > 0 else 0


def last_insert_id(driver: Driver, cursor) -> int | None:
    """Generated identity of the last INSERT on this cursor, or None when the driver cannot tell."""
    if driver.name == "sqlite":
        return cursor.lastrowid
    if driver.name == "postgresql":
        cursor.execute("SELECT lastval()")
    elif driver.name == "mssql":
        cursor.execute("SELECT SCOPE_IDENTITY()")
    else:
        return None
    row = cursor.fetchone()
    return int(row[0]) if row and row[0] is not None else None


def error_code(exc: BaseException) -> str:
    """Best available error code: SQLSTATE, sqlite error name, ODBC state, or the exception class."""
    code = getattr(exc, "pgcode", None) or getattr(exc, "sqlite_errorname", None)
    if code:
        return str(code)
    args = getattr(exc, "args", ())
    if len(args) >= 2 and isinstance(args[0], str) and len(args[0]) == 5:
        return args[0]
    return type(exc).__name__
