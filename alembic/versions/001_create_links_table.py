"""Create links table.

Revision ID: 001
Revises:
Create Date: 2024-06-03

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the links table."""
    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "short_code",
            sa.String(32),
            nullable=False,
            comment="Short code for the URL (e.g., 'aB3xK9p' or 'q3-report')",
        ),
        sa.Column(
            "destination_url",
            sa.Text(),
            nullable=False,
            comment="The URL visitors are redirected to",
        ),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment="Inactive links resolve as not found but keep their clicks",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_links")),
    )
    op.create_index(op.f("ix_links_short_code"), "links", ["short_code"], unique=True)
    op.create_index(op.f("ix_links_is_active"), "links", ["is_active"])


def downgrade() -> None:
    """Drop the links table."""
    op.drop_index(op.f("ix_links_is_active"), table_name="links")
    op.drop_index(op.f("ix_links_short_code"), table_name="links")
    op.drop_table("links")
