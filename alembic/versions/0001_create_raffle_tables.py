"""create raffle tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
MONEY = sa.Numeric(18, 4)
PERCENT = sa.Numeric(9, 4)


def upgrade() -> None:
    op.create_table(
        "raffle_participants",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_excluded", sa.Boolean(), nullable=False),
        sa.Column("excluded_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("exclusion_reason", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("raffle_participants_pkey")),
        sa.UniqueConstraint("external_id", name=op.f("raffle_participants_external_id_key")),
    )
    op.create_table(
        "monthly_raffles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("total_fund", MONEY, nullable=False),
        sa.Column("total_participants", sa.Integer(), nullable=False),
        sa.Column("exclusion_enabled", sa.Boolean(), nullable=False),
        sa.Column("exclusion_period", sa.String(length=20), nullable=False),
        sa.Column("exclusion_custom_period", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("monthly_raffles_pkey")),
        sa.UniqueConstraint("name", name="monthly_raffles_name_key"),
    )
    op.create_table(
        "monthly_raffle_weeks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("monthly_raffle_id", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("fund_pct", PERCENT, nullable=False),
        sa.Column("fund", MONEY, nullable=False),
        sa.Column("participants", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["monthly_raffle_id"],
            ["monthly_raffles.id"],
            name=op.f("monthly_raffle_weeks_monthly_raffle_id_fkey"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("monthly_raffle_weeks_pkey")),
        sa.UniqueConstraint(
            "monthly_raffle_id", "week", name="monthly_raffle_weeks_raffle_week_key"
        ),
    )
    op.create_index(
        op.f("ix_monthly_raffle_weeks_monthly_raffle_id"),
        "monthly_raffle_weeks",
        ["monthly_raffle_id"],
    )
    op.create_table(
        "weekly_raffles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("monthly_raffle_id", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("fund", MONEY, nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("winners_count", sa.Integer(), nullable=False),
        sa.Column("first_pct", PERCENT, nullable=False),
        sa.Column("second_pct", PERCENT, nullable=False),
        sa.Column("third_pct", PERCENT, nullable=False),
        sa.Column("points_required", sa.Integer(), nullable=False),
        sa.Column("draw_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_registration_open", sa.Boolean(), nullable=False),
        sa.Column("is_drawn", sa.Boolean(), nullable=False),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["monthly_raffle_id"],
            ["monthly_raffles.id"],
            name=op.f("weekly_raffles_monthly_raffle_id_fkey"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("weekly_raffles_pkey")),
        sa.UniqueConstraint(
            "monthly_raffle_id", "week", name="weekly_raffles_monthly_week_key"
        ),
    )
    op.create_index(
        op.f("ix_weekly_raffles_monthly_raffle_id"),
        "weekly_raffles",
        ["monthly_raffle_id"],
    )
    op.create_table(
        "product_raffles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product", sa.String(length=255), nullable=False),
        sa.Column("product_value", MONEY, nullable=False),
        sa.Column("points_required", sa.Integer(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("draw_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("is_drawn", sa.Boolean(), nullable=False),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("product_raffles_pkey")),
    )
    for table, raffle_table, raffle_column in (
        ("weekly_raffle_entries", "weekly_raffles", "weekly_raffle_id"),
        ("weekly_raffle_exclusions", "weekly_raffles", "weekly_raffle_id"),
        ("product_raffle_entries", "product_raffles", "product_raffle_id"),
    ):
        op.create_table(
            table,
            sa.Column(raffle_column, sa.Integer(), nullable=False),
            sa.Column("participant_id", ID_TYPE, nullable=False),
            sa.ForeignKeyConstraint(
                [raffle_column],
                [f"{raffle_table}.id"],
                name=op.f(f"{table}_{raffle_column}_fkey"),
                ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["participant_id"],
                ["raffle_participants.id"],
                name=op.f(f"{table}_participant_id_fkey"),
                ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint(raffle_column, "participant_id", name=op.f(f"{table}_pkey")),
        )
    op.create_table(
        "raffle_winners",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("weekly_raffle_id", sa.Integer(), nullable=True),
        sa.Column("product_raffle_id", sa.Integer(), nullable=True),
        sa.Column("participant_id", ID_TYPE, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("prize_percentage", PERCENT, nullable=False),
        sa.Column("prize_amount", MONEY, nullable=False),
        sa.Column("special_prize", sa.String(length=255), nullable=True),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(weekly_raffle_id IS NULL) <> (product_raffle_id IS NULL)",
            name=op.f("raffle_winners_one_raffle_check"),
        ),
        sa.ForeignKeyConstraint(
            ["weekly_raffle_id"],
            ["weekly_raffles.id"],
            name=op.f("raffle_winners_weekly_raffle_id_fkey"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["product_raffle_id"],
            ["product_raffles.id"],
            name=op.f("raffle_winners_product_raffle_id_fkey"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["raffle_participants.id"],
            name=op.f("raffle_winners_participant_id_fkey"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("raffle_winners_pkey")),
        sa.UniqueConstraint(
            "weekly_raffle_id", "position", name="raffle_winners_weekly_position_key"
        ),
        sa.UniqueConstraint(
            "product_raffle_id", "position", name="raffle_winners_product_position_key"
        ),
    )
    for column in ("weekly_raffle_id", "product_raffle_id", "participant_id"):
        op.create_index(op.f(f"ix_raffle_winners_{column}"), "raffle_winners", [column])


def downgrade() -> None:
    for column in ("participant_id", "product_raffle_id", "weekly_raffle_id"):
        op.drop_index(op.f(f"ix_raffle_winners_{column}"), table_name="raffle_winners")
    op.drop_table("raffle_winners")
    op.drop_table("product_raffle_entries")
    op.drop_table("weekly_raffle_exclusions")
    op.drop_table("weekly_raffle_entries")
    op.drop_table("product_raffles")
    op.drop_index(op.f("ix_weekly_raffles_monthly_raffle_id"), table_name="weekly_raffles")
    op.drop_table("weekly_raffles")
    op.drop_index(
        op.f("ix_monthly_raffle_weeks_monthly_raffle_id"), table_name="monthly_raffle_weeks"
    )
    op.drop_table("monthly_raffle_weeks")
    op.drop_table("monthly_raffles")
    op.drop_table("raffle_participants")
