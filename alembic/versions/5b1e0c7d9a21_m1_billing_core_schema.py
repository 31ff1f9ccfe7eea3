"""m1_billing_core_schema

Revision ID: 5b1e0c7d9a21
Revises:
Create Date: 2026-10-01 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5b1e0c7d9a21"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("tier", sa.String(8), nullable=True),
        sa.Column("frozen", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("frozen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_customer_ref", sa.String(128), nullable=True),
        sa.Column("user_type", sa.String(16), nullable=False, server_default=sa.text("'member'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("tier IS NULL OR tier IN ('t1','t2','t3')", name="ck_profiles_tier"),
        sa.CheckConstraint("user_type IN ('member','studio_owner')", name="ck_profiles_user_type"),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )
    op.create_index("idx_profiles_tier_frozen", "profiles", ["tier", "frozen"])
    op.create_index("uq_profiles_email", "profiles", ["email"], unique=True)

    op.create_table(
        "credit_ledger",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("delta <> 0", name="ck_credit_ledger_delta_non_zero"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], name="fk_credit_ledger_user_id_profiles"),
        sa.PrimaryKeyConstraint("id", name="pk_credit_ledger"),
    )
    op.create_index("idx_credit_ledger_user_created", "credit_ledger", ["user_id", "created_at"])
    op.create_index("idx_credit_ledger_user_expires", "credit_ledger", ["user_id", "expires_at"])
    op.create_index("idx_credit_ledger_source", "credit_ledger", ["source"])

    op.execute(
        """
        CREATE OR REPLACE FUNCTION fn_credit_ledger_append_only()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            RAISE EXCEPTION 'credit_ledger is append-only';
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_credit_ledger_append_only
        BEFORE UPDATE OR DELETE ON credit_ledger
        FOR EACH ROW
        EXECUTE FUNCTION fn_credit_ledger_append_only();
        """
    )

    op.create_table(
        "tourist_passes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("pass_code", sa.String(32), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("classes_total", sa.Integer(), nullable=False),
        sa.Column("classes_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("source_ref", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("classes_total > 0", name="ck_tourist_passes_classes_total_positive"),
        sa.CheckConstraint(
            "classes_used >= 0 AND classes_used <= classes_total",
            name="ck_tourist_passes_classes_used_range",
        ),
        sa.CheckConstraint("ends_at > starts_at", name="ck_tourist_passes_window"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], name="fk_tourist_passes_user_id_profiles"),
        sa.PrimaryKeyConstraint("id", name="pk_tourist_passes"),
        sa.UniqueConstraint("source_ref", name="uq_tourist_passes_source_ref"),
    )
    op.create_index("idx_tourist_passes_user_created", "tourist_passes", ["user_id", "created_at"])

    op.create_table(
        "gyms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"], name="fk_gyms_owner_id_profiles"),
        sa.PrimaryKeyConstraint("id", name="pk_gyms"),
    )

    op.create_table(
        "gym_pricing",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.Column("payout_percentage", sa.Numeric(5, 4), nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "payout_percentage > 0 AND payout_percentage <= 1",
            name="ck_gym_pricing_payout_percentage_range",
        ),
        sa.CheckConstraint("base_price >= 0", name="ck_gym_pricing_base_price_non_negative"),
        sa.ForeignKeyConstraint(["gym_id"], ["gyms.id"], name="fk_gym_pricing_gym_id_gyms"),
        sa.PrimaryKeyConstraint("id", name="pk_gym_pricing"),
    )
    op.create_index("idx_gym_pricing_gym_active", "gym_pricing", ["gym_id", "active"])

    op.create_table(
        "fitness_classes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("gym_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("credit_cost", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("capacity > 0", name="ck_fitness_classes_capacity_positive"),
        sa.CheckConstraint("credit_cost > 0", name="ck_fitness_classes_credit_cost_positive"),
        sa.ForeignKeyConstraint(["gym_id"], ["gyms.id"], name="fk_fitness_classes_gym_id_gyms"),
        sa.PrimaryKeyConstraint("id", name="pk_fitness_classes"),
    )
    op.create_index("idx_fitness_classes_gym_start", "fitness_classes", ["gym_id", "start_time"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("attended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tourist_pass_id", sa.Uuid(), nullable=True),
        sa.Column(
            "credit_allocations",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(32), nullable=True),
        sa.Column("refund_credits", sa.Integer(), nullable=True),
        sa.Column("penalty_credits", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('confirmed','cancelled','completed')", name="ck_bookings_status"),
        sa.CheckConstraint(
            "cancellation_reason IS NULL OR cancellation_reason IN "
            "('early_cancellation','late_cancellation')",
            name="ck_bookings_cancellation_reason",
        ),
        sa.CheckConstraint("credits_used >= 0", name="ck_bookings_credits_used_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], name="fk_bookings_user_id_profiles"),
        sa.ForeignKeyConstraint(["class_id"], ["fitness_classes.id"], name="fk_bookings_class_id_fitness_classes"),
        sa.ForeignKeyConstraint(
            ["tourist_pass_id"],
            ["tourist_passes.id"],
            name="fk_bookings_tourist_pass_id_tourist_passes",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_bookings"),
    )
    op.create_index("idx_bookings_user_booked", "bookings", ["user_id", "booked_at"])
    op.create_index("idx_bookings_class_status", "bookings", ["class_id", "status"])
    op.create_index(
        "uq_bookings_confirmed_per_user_class",
        "bookings",
        ["user_id", "class_id"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
    )

    op.create_table(
        "credit_audit_log",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("credits_before", sa.Integer(), nullable=True),
        sa.Column("credits_after", sa.Integer(), nullable=True),
        sa.Column("credits_changed", sa.Integer(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], name="fk_credit_audit_log_user_id_profiles"),
        sa.PrimaryKeyConstraint("id", name="pk_credit_audit_log"),
    )
    op.create_index("idx_credit_audit_user_created", "credit_audit_log", ["user_id", "created_at"])
    op.create_index("idx_credit_audit_action_created", "credit_audit_log", ["action", "created_at"])

    op.create_table(
        "payout_snapshots",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("total_gyms", sa.Integer(), nullable=False),
        sa.Column("total_bookings", sa.Integer(), nullable=False),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_payouts", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "report",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_payout_snapshots"),
    )
    op.create_index("idx_payout_snapshots_period", "payout_snapshots", ["period_start", "period_end"])


def downgrade() -> None:
    op.drop_table("payout_snapshots")
    op.drop_table("credit_audit_log")
    op.drop_table("bookings")
    op.drop_table("fitness_classes")
    op.drop_table("gym_pricing")
    op.drop_table("gyms")
    op.drop_table("tourist_passes")
    op.execute("DROP TRIGGER IF EXISTS trg_credit_ledger_append_only ON credit_ledger;")
    op.execute("DROP FUNCTION IF EXISTS fn_credit_ledger_append_only();")
    op.drop_table("credit_ledger")
    op.drop_table("profiles")
