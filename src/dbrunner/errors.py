"""
Error types raised (or captured) by the query runner.
ExecutionError is the only one execute() never raises: it is stored on the runner instead.
"""


class QueryRunnerError(Exception):
    """Base class for all runner errors."""


class ConnectionError(QueryRunnerError):
    """The database connection could not be opened."""


class PrepareError(QueryRunnerError):
    """A statement could not be prepared."""

    def __init__(self, message: str, statement: str | None = None):
        self.statement = statement
        if statement is not None:
            message = f"{message}: {statement!r}"
        super().__init__(message)


class BuildError(QueryRunnerError, ValueError):
    """Records, identifiers or clause arguments cannot be turned into SQL."""


class TransactionError(QueryRunnerError):
    """Explicit transaction misuse (commit without begin, nested begin)."""


class ExecutionError(QueryRunnerError):
    """Driver error captured during execute()."""

    def __init__(self, code: str | None, message: str, cause: BaseException | None = None, statement: str | None = None):
        super().__init__(f"[{code}] {message}" if code else message)
        self.code = code
        self.message = message
        self.cause = cause
        self.statement = statement
