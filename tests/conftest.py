import os
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
os.environ["PROJECT_ROOT"] = str(ROOT)
SCHEMA = ROOT / "tests" / "fixtures" / "schema.sql"


@pytest.fixture()
def runner():
    """In-memory sqlite runner with the test schema loaded."""
    from src.dbrunner.runner import QueryRunner
    db = QueryRunner("sqlite:///:memory:")
    db.run_script(str(SCHEMA))
    yield db
    db.close()


@pytest.fixture()
def seeded(runner):
    runner.create([
        {"id": 1, "name": "Ana", "email": "ana@example.com", "age": 31},
        {"id": 2, "name": "Ben", "email": "ben@example.com", "age": 25},
        {"id": 3, "name": "Cleo", "email": "cleo@example.com", "age": 40},
    ], "users").execute()
    return runner
