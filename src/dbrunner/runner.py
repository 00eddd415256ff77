"""
QueryRunner: one connection, one pending statement.
Build a statement (raw SQL, or INSERT/UPDATE/DELETE generated from records), prepare it,
execute it, and get back an affected-row count or field-name -> value dicts.
Errors during execute(), from the driver or from binding values, are captured on the runner instead of raised.
"""
import logging
from enum import Enum
from typing import Any, Mapping, Sequence

import pandas as pd

from src.dbrunner.errors import ExecutionError, PrepareError, TransactionError
from src.dbrunner.records import as_records
from src.dbrunner.statements import (
    FetchMode,
    Statement,
    build_case_update,
    build_delete,
    build_insert,
    build_query,
    build_update,
)
from src.utils.db_connector import ConnectionSettings, execute_sql_file, get_driver, open_connection, parse_settings
from src.utils.db_helpers import (
    affected_rows,
    begin_transaction,
    close_cursor,
    error_code,
    fetch_record,
    fetch_records,
    last_insert_id,
    open_cursor,
    result_columns,
    translate_placeholders,
)
from src.utils.logger import LOGGER_NAME

logger = logging.getLogger(f"{LOGGER_NAME}.runner")


class RunnerState(Enum):
    IDLE = "idle"
    PREPARED = "prepared"
    EXECUTED = "executed"


class QueryRunner:
    """
    Prepared-statement runner over a single DB-API connection.

    Every statement-starting call (query, fetch_all, fetch_first, create, update, remove,
    update_cases) resets per-query state first, so nothing leaks between unrelated calls.
    Clause helpers (order, limit) extend the pending statement and re-prepare it.

    execute() returns:
      - a list of dicts (fetch_all) or a dict / None (fetch_first)
      - the affected-row count otherwise (0 when nothing matched)
      - False when execution failed; see .error for the captured ExecutionError

    Without an explicit transaction() each execute() runs in its own transaction,
    committed on success and rolled back on failure.
    """

    def __init__(self, settings: "ConnectionSettings | str | Mapping[str, Any]", connect: bool = True):
        self.settings = parse_settings(settings)
        self.driver = get_driver(self.settings.driver)
        self.connection = None
        self._cursor = None
        self._statement: Statement | None = None
        self._state = RunnerState.IDLE
        self._result: Any = None
        self._result_columns: list[str] = []
        self._error: ExecutionError | None = None
        self._in_transaction = False
        if connect:
            self.connect()

    def __enter__(self) -> "QueryRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- state -------------------------------------------------------------

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def statement(self) -> Statement | None:
        return self._statement

    @property
    def result(self) -> Any:
        return self._result

    @property
    def error(self) -> ExecutionError | None:
        return self._error

    @property
    def error_code(self) -> str | None:
        return self._error.code if self._error else None

    @property
    def error_message(self) -> str | None:
        return self._error.message if self._error else None

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def raise_for_error(self) -> None:
        """Re-raise the captured execution error, if any."""
        if self._error is not None:
            raise self._error

    def reset(self) -> "QueryRunner":
        """Drop the pending statement, cursor, result and error. Open transactions are kept."""
        close_cursor(self.driver, self._cursor)
        self._cursor = None
        self._statement = None
        self._result = None
        self._result_columns = []
        self._error = None
        self._state = RunnerState.IDLE
        return self

    # --- connection --------------------------------------------------------

    def connect(self, settings: "ConnectionSettings | str | Mapping[str, Any] | None" = None):
        """Open the connection, replacing any existing one."""
        if settings is not None:
            self.settings = parse_settings(settings)
            self.driver = get_driver(self.settings.driver)
        if self.connection is not None:
            self.close()
        self.connection = open_connection(self.settings)
        logger.info("Connected to %s database %s", self.driver.name, self.settings.database)
        return self.connection

    def close(self) -> None:
        self.reset()
        if self.connection is None:
            return
        if self._in_transaction:
            logger.warning("Closing connection with an open transaction; uncommitted work is discarded")
            self._in_transaction = False
        self.connection.close()
        self.connection = None
        logger.info("Closed %s connection", self.driver.name)

    def _ensure_connection(self) -> None:
        if self.connection is None:
            self.connect()

    # --- statements --------------------------------------------------------

    def _prepare(self, statement: Statement) -> "QueryRunner":
        if not statement.sql or not statement.sql.strip():
            raise PrepareError("Cannot prepare an empty statement", statement.sql)
        self._ensure_connection()
        close_cursor(self.driver, self._cursor)
        self._cursor = None
        try:
            self._cursor = open_cursor(self.driver, self.connection)
        except self.driver.error_class as e:
            raise PrepareError(f"Could not prepare statement ({e})", statement.sql) from e
        self._statement = statement
        self._result = None
        self._state = RunnerState.PREPARED
        logger.debug("Prepared: %s | bindings=%s", statement.sql, statement.bindings)
        return self

    def _pending(self, action: str) -> Statement:
        if self._statement is None:
            raise PrepareError(f"No statement prepared to {action}")
        return self._statement

    def query(self, sql: str, bindings: Sequence[Any] | None = None) -> "QueryRunner":
        """Raw statement; execute() returns the affected-row count."""
        self.reset()
        return self._prepare(build_query(sql, bindings, FetchMode.NONE))

    def fetch_all(self, sql: str, bindings: Sequence[Any] | None = None) -> "QueryRunner":
        """Raw SELECT; execute() returns every row as a dict."""
        self.reset()
        return self._prepare(build_query(sql, bindings, FetchMode.ALL))

    def fetch_first(self, sql: str, bindings: Sequence[Any] | None = None) -> "QueryRunner":
        """Raw SELECT; execute() returns the first row as a dict, or None."""
        self.reset()
        return self._prepare(build_query(sql, bindings, FetchMode.FIRST))

    def create(self, record_or_records: Any, table: str) -> "QueryRunner":
        self.reset()
        return self._prepare(build_insert(as_records(record_or_records), table))

    def update(self, record_or_records: Any, table: str, id_field: str = "id") -> "QueryRunner":
        self.reset()
        return self._prepare(build_update(as_records(record_or_records), table, id_field))

    def remove(self, record_or_records: Any, table: str, id_field: str = "id") -> "QueryRunner":
        self.reset()
        return self._prepare(build_delete(as_records(record_or_records), table, id_field))

    def update_cases(self, table: str, column: str, key_column: str, mapping: Mapping[Any, Any]) -> "QueryRunner":
        """Rewrite one column through CASE key_column WHEN key THEN value ...; other rows keep their value."""
        self.reset()
        return self._prepare(build_case_update(table, column, key_column, mapping))

    def order(self, expr: str) -> "QueryRunner":
        return self._prepare(self._pending("order").with_order(expr))

    def limit(self, n: int, offset: int | None = None) -> "QueryRunner":
        statement = self._pending("limit").with_limit(n, offset, offset_keyword=self.driver.offset_keyword)
        return self._prepare(statement)

    # --- execution ---------------------------------------------------------

    def execute(self, bindings: Sequence[Any] | None = None) -> Any:
        """Run the prepared statement. Passing bindings re-binds it; otherwise the stored ones are used."""
        if self._cursor is None:
            raise PrepareError("No statement prepared to execute")
        statement = self._pending("execute")
        if bindings:
            statement = self._statement = statement.bind(bindings)
        self._error = None

        implicit = not self._in_transaction
        try:
            if implicit:
                begin_transaction(self.driver, self.connection)
            if statement.bindings:
                sql = translate_placeholders(statement.sql, self.driver.paramstyle)
                self._cursor.execute(sql, statement.bindings)
            else:
                self._cursor.execute(statement.sql)
            self._result_columns = result_columns(self._cursor)
            if statement.fetch is FetchMode.ALL:
                result = fetch_records(self._cursor)
            elif statement.fetch is FetchMode.FIRST:
                result = fetch_record(self._cursor)
            else:
                result = affected_rows(self.driver, self._cursor)
            if implicit:
                self.connection.commit()
        except Exception as e:
            # binding errors (OverflowError, TypeError) are captured and rolled back like driver errors
            self._fail(e, statement)
            return False

        self._result = result
        self._state = RunnerState.EXECUTED
        return result

    def _fail(self, exc: BaseException, statement: Statement) -> None:
        self._error = ExecutionError(error_code(exc), str(exc), cause=exc, statement=statement.sql)
        logger.error("Execution failed (%s): %s", self._error.code, self._error.message)
        logger.error("Failed SQL (first 200 chars): %s", statement.sql[:200])
        try:
            self.connection.rollback()
        except self.driver.error_class as rollback_error:
            logger.warning("Rollback after failure did not complete: %s", rollback_error)
        if self._in_transaction:
            logger.info("Explicit transaction rolled back")
            self._in_transaction = False
        self._result = None
        self._state = RunnerState.EXECUTED

    def rows(self, sql: str, bindings: Sequence[Any] | None = None) -> int | bool:
        """Prepare and execute in one call; affected rows or False."""
        return self.query(sql, bindings).execute()

    def fetch_frame(self, sql: str, bindings: Sequence[Any] | None = None) -> pd.DataFrame:
        """Run a SELECT and return a DataFrame. Raises the captured ExecutionError on failure."""
        records = self.fetch_all(sql, bindings).execute()
        if records is False:
            self.raise_for_error()
        return pd.DataFrame(records, columns=self._result_columns)

    def last_insert_id(self) -> int | None:
        if self._cursor is None:
            return None
        try:
            return last_insert_id(self.driver, self._cursor)
        except self.driver.error_class as e:
            raise ExecutionError(error_code(e), str(e), cause=e) from e

    def run_script(self, path: str) -> None:
        """Execute a multi-statement SQL file (schema setup). Raises ExecutionError on driver errors."""
        self.reset()
        self._ensure_connection()
        try:
            execute_sql_file(self.connection, path)
        except self.driver.error_class as e:
            raise ExecutionError(error_code(e), str(e), cause=e, statement=str(path)) from e
        logger.info("Executed SQL script %s", path)

    # --- transactions ------------------------------------------------------

    def transaction(self) -> "QueryRunner":
        """Begin an explicit transaction; execute() no longer commits until commit() is called."""
        if self._in_transaction:
            raise TransactionError("A transaction is already open")
        self._ensure_connection()
        try:
            begin_transaction(self.driver, self.connection)
        except self.driver.error_class as e:
            raise TransactionError(f"Could not begin transaction: {e}") from e
        self._in_transaction = True
        logger.debug("Transaction started")
        return self

    def commit(self) -> None:
        self._end_transaction("commit")

    def rollback(self) -> None:
        self._end_transaction("rollback")

    def _end_transaction(self, action: str) -> None:
        if not self._in_transaction:
            raise TransactionError(f"No open transaction to {action}")
        self._in_transaction = False
        try:
            getattr(self.connection, action)()
        except self.driver.error_class as e:
            raise TransactionError(f"Could not {action} transaction: {e}") from e
        logger.debug("Transaction %s", "committed" if action == "commit" else "rolled back")
