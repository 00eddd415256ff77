"""
Statement builder: generates INSERT/UPDATE/DELETE text and bindings from records.
A Statement is an immutable value; every builder step returns a new one.
All placeholders are written as '?'; drivers with another paramstyle translate at execute time.
"""
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Sequence

from src.dbrunner.errors import BuildError
from src.dbrunner.records import Fields

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class FetchMode(Enum):
    NONE = "none"
    FIRST = "first"
    ALL = "all"


@dataclass(frozen=True)
class Statement:
    sql: str
    bindings: tuple = ()
    columns: tuple[str, ...] = ()
    fetch: FetchMode = FetchMode.NONE

    def bind(self, bindings: Sequence[Any]) -> "Statement":
        return replace(self, bindings=tuple(bindings))

    def with_fetch(self, fetch: FetchMode) -> "Statement":
        return replace(self, fetch=fetch)

    def with_order(self, expr: str) -> "Statement":
        if not isinstance(expr, str) or not expr.strip():
            raise BuildError("ORDER BY expression must be a non-empty string")
        return replace(self, sql=f"{self.sql} ORDER BY {expr.strip()}")

    def with_limit(self, n: int, offset: int | None = None, offset_keyword: bool = False) -> "Statement":
        """Append LIMIT; 'LIMIT n, offset' by default, 'LIMIT n OFFSET offset' when offset_keyword is set."""
        _check_count(n, "limit")
        clause = f" LIMIT {n}"
        if offset is not None:
            _check_count(offset, "offset")
            clause += f" OFFSET {offset}" if offset_keyword else f", {offset}"
        return replace(self, sql=self.sql + clause)


def _check_count(value: Any, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BuildError(f"{label} must be a non-negative integer, got {value!r}")


def check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise BuildError(f"Invalid SQL identifier: {name!r}")
    return name


def _placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


def build_query(sql: str, bindings: Sequence[Any] | None = None, fetch: FetchMode = FetchMode.NONE) -> Statement:
    return Statement(sql=sql, bindings=tuple(bindings or ()), fetch=fetch)


def build_insert(records: list[Fields], table: str) -> Statement:
    """Multi-row INSERT; column order follows the first record."""
    check_identifier(table)
    columns = [check_identifier(name) for name, _ in records[0]]
    expected = set(columns)
    bindings = []
    for i, record in enumerate(records):
        values = dict(record)
        if set(values) != expected:
            raise BuildError(f"Record {i} fields {sorted(values)} differ from first record fields {sorted(expected)}")
        bindings.extend(values[c] for c in columns)

    group = f"({_placeholders(len(columns))})"
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join([group] * len(records))}"
    return Statement(sql=sql, bindings=tuple(bindings), columns=tuple(columns))


def _id_value(values: dict, id_field: str, index: int) -> Any:
    if id_field not in values:
        raise BuildError(f"Record {index} has no '{id_field}' field")
    return values[id_field]


def build_update(records: list[Fields], table: str, id_field: str = "id") -> Statement:
    """
    One record: UPDATE t SET a = ?, b = ? WHERE id = ?.
    Several: one CASE expression per non-id column of the first record, restricted by WHERE id IN (...).
    A record lacking a column gets no WHEN branch for it; ELSE keeps the stored value.
    """
    check_identifier(table)
    check_identifier(id_field)
    columns = [check_identifier(name) for name, _ in records[0] if name != id_field]
    if not columns:
        raise BuildError(f"First record has no columns to update besides '{id_field}'")

    if len(records) == 1:
        values = dict(records[0])
        id_value = _id_value(values, id_field, 0)
        sets = ", ".join(f"{c} = ?" for c in columns)
        sql = f"UPDATE {table} SET {sets} WHERE {id_field} = ?"
        bindings = [values[c] for c in columns] + [id_value]
        return Statement(sql=sql, bindings=tuple(bindings), columns=tuple(columns))

    rows = [dict(r) for r in records]
    ids = [_id_value(values, id_field, i) for i, values in enumerate(rows)]
    sets = []
    bindings = []
    for column in columns:
        whens = []
        for values in rows:
            if column not in values:
                continue
            whens.append(f"WHEN {id_field} = ? THEN ?")
            bindings.extend((values[id_field], values[column]))
        sets.append(f"{column} = CASE {' '.join(whens)} ELSE {column} END")
    bindings.extend(ids)
    sql = f"UPDATE {table} SET {', '.join(sets)} WHERE {id_field} IN ({_placeholders(len(ids))})"
    return Statement(sql=sql, bindings=tuple(bindings), columns=tuple(columns))


def build_delete(records: list[Fields], table: str, id_field: str = "id") -> Statement:
    check_identifier(table)
    check_identifier(id_field)
    ids = [_id_value(dict(r), id_field, i) for i, r in enumerate(records)]
    if len(ids) == 1:
        sql = f"DELETE FROM {table} WHERE {id_field} = ?"
    else:
        sql = f"DELETE FROM {table} WHERE {id_field} IN ({_placeholders(len(ids))})"
    return Statement(sql=sql, bindings=tuple(ids), columns=(id_field,))


def build_case_update(table: str, column: str, key_column: str, mapping: Mapping[Any, Any]) -> Statement:
    """UPDATE t SET column = CASE key_column WHEN ? THEN ? ... ELSE column END."""
    check_identifier(table)
    check_identifier(column)
    check_identifier(key_column)
    if not mapping:
        raise BuildError("Case mapping is empty")
    whens = " ".join(["WHEN ? THEN ?"] * len(mapping))
    bindings = [v for pair in mapping.items() for v in pair]
    sql = f"UPDATE {table} SET {column} = CASE {key_column} {whens} ELSE {column} END"
    return Statement(sql=sql, bindings=tuple(bindings), columns=(column,))
