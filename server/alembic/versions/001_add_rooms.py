"""Add rooms and room_players tables.

Revision ID: 001_add_rooms
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_add_rooms"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create rooms and room_players tables."""
    op.create_table(
        "rooms",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("game_name", sa.String(100), nullable=False),
        sa.Column("unlisted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("setup_data", sa.JSON(), nullable=True),
        sa.Column("next_room_id", sa.String(64), nullable=True),
        sa.Column("initial_state", sa.JSON(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Composite index for listing the rooms of one game
    op.create_index("ix_rooms_game_name_unlisted", "rooms", ["game_name", "unlisted"])

    op.create_table(
        "room_players",
        sa.Column("room_id", sa.String(64), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("credentials", sa.String(255), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("room_id", "slot"),
    )


def downgrade() -> None:
    """Drop room_players and rooms tables."""
    op.drop_table("room_players")
    op.drop_index("ix_rooms_game_name_unlisted", "rooms")
    op.drop_table("rooms")
