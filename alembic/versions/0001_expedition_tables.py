"""Expedition details, members, expedition lockouts and character lockouts.

Revision ID: 0001_expedition_tables
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision: str = "0001_expedition_tables"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "character_data",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("name", name="uq_character_data_name"),
    )

    op.create_table(
        "expedition_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(length=36), nullable=False),
        sa.Column("instance_id", sa.Integer(), nullable=False),
        sa.Column("expedition_name", sa.String(length=128), nullable=False),
        sa.Column("leader_id", sa.BigInteger(), nullable=False),
        sa.Column("min_players", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("max_players", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("add_replay_on_join", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("uuid", name="uq_expedition_details_uuid"),
        sa.UniqueConstraint("instance_id", name="uq_expedition_details_instance"),
    )
    op.create_index("ix_expedition_details_leader_id", "expedition_details", ["leader_id"], unique=False)

    op.create_table(
        "expedition_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "expedition_id",
            sa.Integer(),
            sa.ForeignKey("expedition_details.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("character_id", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("character_id", name="uq_expedition_members_character"),
    )
    op.create_index("ix_expedition_members_expedition_id", "expedition_members", ["expedition_id"], unique=False)

    op.create_table(
        "expedition_lockouts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "expedition_id",
            sa.Integer(),
            sa.ForeignKey("expedition_details.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_expedition_uuid", sa.String(length=36), nullable=False),
        sa.Column("event_name", sa.String(length=256), nullable=False),
        sa.Column("expire_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("expedition_id", "event_name", name="uq_expedition_lockout_event"),
    )

    op.create_table(
        "expedition_character_lockouts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("character_id", sa.BigInteger(), nullable=False),
        sa.Column("expire_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("from_expedition_uuid", sa.String(length=36), nullable=False),
        sa.Column("expedition_name", sa.String(length=128), nullable=False),
        sa.Column("event_name", sa.String(length=256), nullable=False),
        sa.Column("is_pending", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint(
            "character_id",
            "expedition_name",
            "event_name",
            name="uq_character_lockout_event",
        ),
    )
    op.create_index(
        "ix_expedition_character_lockouts_character_id",
        "expedition_character_lockouts",
        ["character_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_expedition_character_lockouts_character_id", table_name="expedition_character_lockouts")
    op.drop_table("expedition_character_lockouts")
    op.drop_table("expedition_lockouts")
    op.drop_index("ix_expedition_members_expedition_id", table_name="expedition_members")
    op.drop_table("expedition_members")
    op.drop_index("ix_expedition_details_leader_id", table_name="expedition_details")
    op.drop_table("expedition_details")
    op.drop_table("character_data")
