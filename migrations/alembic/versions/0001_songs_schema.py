"""Songs schema - songs, liked_songs

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the song catalog and the per-user like join table. Users live in
Supabase auth (auth.users) and are referenced by UUID only.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # songs table
    # ==========================================================================
    op.create_table(
        "songs",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        # NULL for seeded songs with no uploader
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False),
        sa.Column("song_path", sa.Text(), nullable=False),
        sa.Column("image_path", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_songs_created_at", "songs", ["created_at"])
    op.create_index("idx_songs_user_id", "songs", ["user_id"])

    # ==========================================================================
    # liked_songs table
    # ==========================================================================
    op.create_table(
        "liked_songs",
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("song_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "song_id"),
        sa.ForeignKeyConstraint(
            ["song_id"],
            ["songs.id"],
            ondelete="CASCADE",
        ),
    )


def downgrade() -> None:
    op.drop_table("liked_songs")
    op.drop_index("idx_songs_user_id", table_name="songs")
    op.drop_index("idx_songs_created_at", table_name="songs")
    op.drop_table("songs")
