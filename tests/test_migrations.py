import os
import subprocess
import unittest
from pathlib import Path

import psycopg
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import make_url


class MigrationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        db_url_raw = os.getenv("DATABASE_URL", "")
        if not db_url_raw.startswith("postgresql"):
            raise unittest.SkipTest("Migration test requires PostgreSQL DATABASE_URL")

        cls.project_root = Path(__file__).resolve().parents[1]
        cls.base_url = make_url(db_url_raw)
        cls.test_db_name = f"{cls.base_url.database}_migration_test"
        cls.test_url = cls.base_url.set(database=cls.test_db_name)
        cls.admin_url = cls.base_url.set(database="postgres")

        cls._recreate_database()
        cls._run_alembic_upgrade()

        cls.engine = create_engine(cls.test_url)
        cls.inspector = inspect(cls.engine)

    @classmethod
    def tearDownClass(cls):
        if hasattr(cls, "engine"):
            cls.engine.dispose()
        if hasattr(cls, "admin_url") and hasattr(cls, "test_db_name"):
            cls._execute_admin(f'DROP DATABASE IF EXISTS "{cls.test_db_name}"')

    @classmethod
    def _execute_admin(cls, *statements):
        dsn = cls.admin_url.render_as_string(hide_password=False).replace("+psycopg", "")
        with psycopg.connect(dsn, autocommit=True) as conn:
            conn.execute(
                "SELECT pg_terminate_backend(pid) "
                "FROM pg_stat_activity "
                "WHERE datname = %s AND pid <> pg_backend_pid()",
                (cls.test_db_name,),
            )
            for statement in statements:
                conn.execute(statement)

    @classmethod
    def _recreate_database(cls):
        cls._execute_admin(
            f'DROP DATABASE IF EXISTS "{cls.test_db_name}"',
            f'CREATE DATABASE "{cls.test_db_name}"',
        )

    @classmethod
    def _run_alembic_upgrade(cls):
        env = os.environ.copy()
        env["DATABASE_URL"] = cls.test_url.render_as_string(hide_password=False)
        env["PYTHONPATH"] = str(cls.project_root)
        subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=cls.project_root,
            env=env,
            check=True,
            capture_output=True,
            text=True,
        )

    def test_upgrade_head_creates_requests_table(self):
        tables = set(self.inspector.get_table_names())
        self.assertTrue({"requests", "alembic_version"}.issubset(tables))
        columns = {column["name"] for column in self.inspector.get_columns("requests")}
        self.assertTrue({"public_token", "created_at", "status", "is_emergency", "pickup_lat"}.issubset(columns))

    def test_public_token_is_unique(self):
        unique = [index for index in self.inspector.get_indexes("requests") if index["column_names"] == ["public_token"]]
        self.assertTrue(unique and unique[0]["unique"])

    def test_created_at_comes_from_database_clock(self):
        with self.engine.begin() as conn:
            created_at = conn.execute(
                text(
                    "INSERT INTO requests (id, pickup_text, dest_text, date, source, public_token) "
                    "VALUES (gen_random_uuid(), 'Α', 'Β', '2026-03-10', 'ambugo-web', 'tok1') "
                    "RETURNING created_at"
                )
            ).scalar_one()
        self.assertIsNotNone(created_at.tzinfo)

    def test_alembic_version_is_set(self):
        with self.engine.connect() as conn:
            version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
        self.assertEqual(version, "0001_init")
