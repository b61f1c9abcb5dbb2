"""Run database migrations against the configured Postgres database.

Requires DATABASE_URL in the environment, .env or .env.local (Postgres
connection string of the database behind SUPABASE_URL).

Usage:
    python -m src.db.migrate
"""

from pathlib import Path

import psycopg

from src.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent.parent / "migrations"


def pending_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Return migration files in the order they must run (001_..., 002_...)."""
    if not migrations_dir.is_dir():
        raise SystemExit(f"Migrations directory not found: {migrations_dir}")
    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        raise SystemExit(f"No .sql files found in {migrations_dir}")
    return sql_files


def run_migrations(database_url: str | None = None) -> None:
    """Apply migration SQL files in migrations/ in order."""
    database_url = database_url or get_settings().database_url
    if not database_url:
        raise SystemExit(
            "DATABASE_URL is not set. Add your Postgres connection string to .env or .env.local."
        )

    sql_files = pending_migrations()
    try:
        with psycopg.connect(database_url, autocommit=True) as conn:
            with conn.cursor() as cur:
                for path in sql_files:
                    print(f"Applying {path.name}...")
                    cur.execute(path.read_text())
                    print(f"  OK {path.name}")
    except psycopg.OperationalError as e:
        hint = ""
        if "password authentication failed" in str(e):
            hint = (
                "\n\nCheck the database password (not the service key) and "
                "percent-encode any # @ % or : it contains."
            )
        raise SystemExit(f"Database connection failed: {e}{hint}") from e

    print("Migrations complete.")


if __name__ == "__main__":
    run_migrations()
