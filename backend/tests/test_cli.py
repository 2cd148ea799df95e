"""
CLI command tests (flask system / users / ledger / db).
"""

from pathlib import Path

from flask_migrate.cli import db as migrate_cli
from sqlalchemy import inspect, update

from kardex import create_app
from kardex.extensions import db
from kardex.models import MAIN_WAREHOUSE_ID, StockEntry, User, Warehouse


class TestSystemCommands:

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init", "--admin-username", "boss", "--admin-password", "secret1"])
        second = runner.invoke(args=["system", "init", "--admin-username", "boss", "--admin-password", "secret1"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert "already exists" in second.output
        assert db_session.query(Warehouse).count() == 3
        assert db_session.query(User).filter_by(username="boss").one().role == "manager"


class TestUserCommands:

    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create",
            "--username", "cli-user",
            "--name", "Cli User",
            "--password", "secret1",
            "--role", "seller",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output

        listing = runner.invoke(args=["users", "list"])
        assert "cli-user" in listing.output

    def test_create_rejects_short_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "weak",
            "--name", "Weak",
            "--password", "123",
            "--role", "seller",
        ])
        assert "FAIL" in result.output
        assert db_session.query(User).filter_by(username="weak").count() == 0


class TestLedgerCheck:

    def test_consistent_ledger(self, app, db_session, make_product):
        make_product(stock=3)
        result = app.test_cli_runner().invoke(args=["ledger", "check"])
        assert result.exit_code == 0, result.output
        assert "1 product(s) checked" in result.output

    def test_reports_mismatch(self, app, db_session, make_product):
        product = make_product(stock=3)
        db_session.execute(
            update(StockEntry)
            .where(StockEntry.product_id == product.id, StockEntry.warehouse_id == MAIN_WAREHOUSE_ID)
            .values(quantity=7)
        )
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "check"])

        assert result.exit_code == 1
        assert "movements sum to 3, ledger holds 7" in result.output


class TestMigrations:

    def test_upgrade_builds_schema_matching_models(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'migrated.sqlite3'}",
        })
        migrations_dir = str(Path(__file__).resolve().parents[1] / "migrations")

        with app.app_context():
            result = app.test_cli_runner().invoke(migrate_cli, args=["upgrade", "--directory", migrations_dir])

        assert result.exit_code == 0, result.output
        with app.app_context():
            tables = set(inspect(db.engine).get_table_names())
            assert set(db.metadata.tables) <= tables
            assert [w.id for w in db.session.query(Warehouse).order_by(Warehouse.id)] == [1, 2, 3]
            db.session.remove()
            db.engine.dispose()
