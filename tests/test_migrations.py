"""The Alembic migration builds the same schema as the ORM models."""

from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from roadassist.infrastructure.database import Base
from roadassist.infrastructure import models  # noqa: F401  (registers tables)

MIGRATION = (
    Path(__file__).resolve().parent.parent
    / "migrations"
    / "versions"
    / "001_initial_schema.py"
)


def _load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrated():
    engine = create_engine("sqlite://")
    migration = _load_migration()
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
        yield conn, migration
    engine.dispose()


def test_upgrade_creates_every_model_table(migrated):
    conn, _ = migrated
    assert set(inspect(conn).get_table_names()) == set(Base.metadata.tables)


def test_columns_match_models(migrated):
    conn, _ = migrated
    inspector = inspect(conn)
    for name, table in Base.metadata.tables.items():
        migrated_cols = {c["name"] for c in inspector.get_columns(name)}
        assert migrated_cols == set(table.columns.keys()), name


def test_request_indexes_exist(migrated):
    conn, _ = migrated
    names = {ix["name"] for ix in inspect(conn).get_indexes("service_requests")}
    assert {
        "idx_requests_status",
        "idx_requests_customer",
        "idx_requests_garage",
        "idx_requests_created",
    } <= names


def test_downgrade_drops_everything(migrated):
    conn, migration = migrated
    with Operations.context(MigrationContext.configure(conn)):
        migration.downgrade()
    assert inspect(conn).get_table_names() == []
