"""Schema migration applies cleanly and matches the ORM tables."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from app.db.base import Base

MIGRATION = (
    Path(__file__).resolve().parents[1] / "alembic" / "versions" / "0001_run_import_schema.py"
)


def load_migration():
    spec = importlib.util.spec_from_file_location("run_import_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_step(engine, step):
    migration = load_migration()
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            getattr(migration, step)()


@pytest.fixture
def fresh_engine():
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


def test_upgrade_creates_every_model_table(fresh_engine):
    run_step(fresh_engine, "upgrade")

    tables = set(inspect(fresh_engine).get_table_names())
    assert set(Base.metadata.tables) <= tables


def test_upgrade_columns_match_models(fresh_engine):
    run_step(fresh_engine, "upgrade")

    inspector = inspect(fresh_engine)
    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name


def test_downgrade_drops_everything(fresh_engine):
    run_step(fresh_engine, "upgrade")
    run_step(fresh_engine, "downgrade")

    assert inspect(fresh_engine).get_table_names() == []
