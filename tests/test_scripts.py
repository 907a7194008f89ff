"""Deploy script helpers (no gunicorn exec, no real migrations)."""
import pytest

from scripts.release import alembic_config, run_release
from scripts.start import gunicorn_argv, parse_port


class TestParsePort:
    def test_default_when_unset(self):
        assert parse_port(None) == 8080
        assert parse_port("  ") == 8080

    def test_valid(self):
        assert parse_port("5000") == 5000

    @pytest.mark.parametrize("raw", ["http", "0", "70000"])
    def test_invalid_exits(self, raw):
        with pytest.raises(SystemExit):
            parse_port(raw)


def test_gunicorn_argv_binds_port():
    argv = gunicorn_argv(5000)
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert "--bind=0.0.0.0:5000" in argv


def test_release_requires_database_url():
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        run_release({})


def test_release_refuses_sqlite_in_production():
    with pytest.raises(RuntimeError, match="Postgres"):
        run_release({"DATABASE_URL": "sqlite:///custbook.db", "ENV": "production"})


def test_alembic_config_points_at_migrations():
    cfg = alembic_config("sqlite:///x.db")
    assert cfg.get_main_option("sqlalchemy.url") == "sqlite:///x.db"
    assert cfg.get_main_option("script_location").endswith("migrations")
