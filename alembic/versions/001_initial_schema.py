"""Initial schema: families, members, invites, schedule rules, children.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    # ── families ──────────────────────────────────────────────────────
    op.create_table(
        "families",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Europe/Berlin"),
        sa.Column("owners", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("family_id", sa.String(36), sa.ForeignKey("families.id"), nullable=True),
        sa.Column("role", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── family_members ────────────────────────────────────────────────
    op.create_table(
        "family_members",
        sa.Column("family_id", sa.String(36), sa.ForeignKey("families.id"), primary_key=True),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("role", sa.String(20), nullable=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── family_invites ────────────────────────────────────────────────
    op.create_table(
        "family_invites",
        sa.Column("family_id", sa.String(36), sa.ForeignKey("families.id"), primary_key=True),
        sa.Column("email_key", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role_suggested", sa.String(20), nullable=False, server_default="parentB"),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by", sa.String(128), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("accepted_by", sa.String(128), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_family_invites_family_token", "family_invites", ["family_id", "token"],
    )

    # ── schedule_rules ────────────────────────────────────────────────
    op.create_table(
        "schedule_rules",
        sa.Column("family_id", sa.String(36), sa.ForeignKey("families.id"), primary_key=True),
        sa.Column("key", sa.String(20), primary_key=True, server_default="active"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("document", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_by", sa.String(128), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── children ──────────────────────────────────────────────────────
    op.create_table(
        "children",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("family_id", sa.String(36), sa.ForeignKey("families.id"), nullable=False),
        sa.Column("name", sa.String(60), nullable=False),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("color", sa.String(7), nullable=False, server_default="#4f46e5"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_children_family_id", "children", ["family_id"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index("ix_children_family_id", table_name="children")
    op.drop_table("children")
    op.drop_table("schedule_rules")
    op.drop_index("ix_family_invites_family_token", table_name="family_invites")
    op.drop_table("family_invites")
    op.drop_table("family_members")
    op.drop_table("users")
    op.drop_table("families")
