"""Create all tables on the configured database (development helper)."""

from __future__ import annotations

from sqlalchemy import Engine

from runsight_stage.db.session import create_tables, engine


def init_db(bind: Engine | None = None) -> Engine:
    """Create every table on ``bind`` and return the engine used."""
    target = bind if bind is not None else engine
    create_tables(target)
    return target


if __name__ == "__main__":
    used = init_db()
    print(f"Database initialized at {used.url.render_as_string(hide_password=True)}.")
