"""Unit tests for SQL generation (no database needed)."""
import pytest

from src.dbrunner.errors import BuildError
from src.dbrunner.records import as_records
from src.dbrunner.statements import (
    FetchMode,
    build_case_update,
    build_delete,
    build_insert,
    build_query,
    build_update,
)


def test_insert_single_record():
    st = build_insert(as_records({"a": 1, "b": 2, "c": 3}), "T")
    assert st.sql == "INSERT INTO T (a, b, c) VALUES (?, ?, ?)"
    assert st.bindings == (1, 2, 3)
    assert st.columns == ("a", "b", "c")


def test_insert_many_records_one_group_each():
    st = build_insert(as_records([{"a": 1, "b": 2}, {"a": 3, "b": 4}, {"a": 5, "b": 6}]), "T")
    assert st.sql == "INSERT INTO T (a, b) VALUES (?, ?), (?, ?), (?, ?)"
    assert st.bindings == (1, 2, 3, 4, 5, 6)


def test_insert_uses_first_record_column_order():
    st = build_insert(as_records([{"a": 1, "b": 2}, {"b": 4, "a": 3}]), "T")
    assert st.bindings == (1, 2, 3, 4)


def test_insert_rejects_mismatched_fields():
    with pytest.raises(BuildError):
        build_insert(as_records([{"a": 1, "b": 2}, {"a": 3}]), "T")


def test_update_single_moves_id_last():
    st = build_update(as_records({"id": 1, "a": 5}), "T")
    assert st.sql == "UPDATE T SET a = ? WHERE id = ?"
    assert st.bindings == (5, 1)


def test_update_single_custom_id_field():
    st = build_update(as_records({"name": "x", "uid": 9, "age": 3}), "T", id_field="uid")
    assert st.sql == "UPDATE T SET name = ?, age = ? WHERE uid = ?"
    assert st.bindings == ("x", 3, 9)


def test_update_many_uses_case_per_column():
    st = build_update(as_records([{"id": 1, "a": 5, "b": 6}, {"id": 2, "a": 7, "b": 8}]), "T")
    assert st.sql == (
        "UPDATE T SET a = CASE WHEN id = ? THEN ? WHEN id = ? THEN ? ELSE a END, "
        "b = CASE WHEN id = ? THEN ? WHEN id = ? THEN ? ELSE b END "
        "WHERE id IN (?, ?)"
    )
    assert st.bindings == (1, 5, 2, 7, 1, 6, 2, 8, 1, 2)


def test_update_many_skips_missing_field():
    st = build_update(as_records([{"id": 1, "a": 5, "b": 6}, {"id": 2, "a": 7}]), "T")
    assert "b = CASE WHEN id = ? THEN ? ELSE b END" in st.sql
    assert st.bindings == (1, 5, 2, 7, 1, 6, 1, 2)


def test_update_requires_id_and_columns():
    with pytest.raises(BuildError):
        build_update(as_records({"a": 5}), "T")
    with pytest.raises(BuildError):
        build_update(as_records({"id": 5}), "T")
    with pytest.raises(BuildError):
        build_update(as_records([{"id": 1, "a": 2}, {"a": 3}]), "T")


def test_delete_single_and_many():
    st = build_delete(as_records({"id": 7}), "T")
    assert st.sql == "DELETE FROM T WHERE id = ?"
    assert st.bindings == (7,)

    st = build_delete(as_records([{"id": 1}, {"id": 2}, {"id": 3}]), "T")
    assert st.sql == "DELETE FROM T WHERE id IN (?, ?, ?)"
    assert st.bindings == (1, 2, 3)


def test_case_update_binds_keys_and_values():
    st = build_case_update("T", "status", "code", {"a": "on", "b": "off"})
    assert st.sql == "UPDATE T SET status = CASE code WHEN ? THEN ? WHEN ? THEN ? ELSE status END"
    assert st.bindings == ("a", "on", "b", "off")
    with pytest.raises(BuildError):
        build_case_update("T", "status", "code", {})


def test_order_then_limit_appends_clauses_and_keeps_bindings():
    st = build_query("SELECT * FROM T WHERE a > ?", [3], FetchMode.ALL)
    st = st.with_order("name ASC").with_limit(10, 5)
    assert st.sql == "SELECT * FROM T WHERE a > ? ORDER BY name ASC LIMIT 10, 5"
    assert st.bindings == (3,)
    assert st.fetch is FetchMode.ALL


def test_limit_offset_keyword_and_validation():
    st = build_query("SELECT 1").with_limit(10, 5, offset_keyword=True)
    assert st.sql.endswith(" LIMIT 10 OFFSET 5")
    assert build_query("SELECT 1").with_limit(3).sql == "SELECT 1 LIMIT 3"
    for bad in (-1, 1.5, True, "10"):
        with pytest.raises(BuildError):
            build_query("SELECT 1").with_limit(bad)


def test_invalid_identifiers_rejected():
    with pytest.raises(BuildError):
        build_insert(as_records({"a": 1}), "users; DROP TABLE x")
    with pytest.raises(BuildError):
        build_insert(as_records({"bad col": 1}), "T")
    st = build_insert(as_records({"a": 1}), "main.T")
    assert st.sql.startswith("INSERT INTO main.T ")


def test_statement_is_immutable_between_steps():
    base = build_query("SELECT * FROM T", [1])
    ordered = base.with_order("id")
    rebound = ordered.bind([2])
    assert base.sql == "SELECT * FROM T"
    assert ordered.bindings == (1,)
    assert rebound.bindings == (2,)
