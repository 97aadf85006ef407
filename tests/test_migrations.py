"""
Tests for the alembic migrations, rendered as SQL without a database.
"""
import io
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent.parent


def render_upgrade_sql() -> str:
    buffer = io.StringIO()
    config = Config(output_buffer=buffer)
    config.set_main_option("script_location", str(ROOT / "alembic"))
    command.upgrade(config, "head", sql=True)
    return buffer.getvalue()


def test_short_code_has_a_single_unique_index():
    sql = render_upgrade_sql()

    assert "CREATE UNIQUE INDEX ix_links_short_code ON links (short_code)" in sql
    assert "uq_links_short_code" not in sql


def test_clicks_cascade_with_their_link():
    sql = render_upgrade_sql()

    assert "ON DELETE CASCADE" in sql
