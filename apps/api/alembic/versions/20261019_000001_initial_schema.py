"""create officer portal schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_users_email"), "admin_users", ["email"], unique=True)

    op.create_table(
        "rate_plans",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("plan_name", sa.String(), nullable=False),
        sa.Column("user_type", sa.String(), nullable=False, server_default="Police"),
        sa.Column("monthly_fee", sa.Float(), nullable=False, server_default="0"),
        sa.Column("default_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("renewal_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("topup_allowed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(), nullable=False, server_default="Active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plan_name", "user_type", name="uq_rate_plans_name_user_type"),
    )

    op.create_table(
        "capabilities",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("service_provider", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False, server_default="PRO"),
        sa.Column("api_key_encrypted", sa.Text(), nullable=True),
        sa.Column("key_status", sa.String(), nullable=False, server_default="Inactive"),
        sa.Column("default_credit_charge", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("global_buy_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("global_sell_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_capabilities_key"), "capabilities", ["key"], unique=True)

    op.create_table(
        "plan_capabilities",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("plan_id", sa.String(), nullable=False),
        sa.Column("capability_id", sa.String(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("credit_cost", sa.Integer(), nullable=True),
        sa.Column("buy_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("sell_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["rate_plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["capability_id"], ["capabilities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plan_id", "capability_id", name="uq_plan_capabilities_plan_capability"),
    )
    op.create_index(op.f("ix_plan_capabilities_plan_id"), "plan_capabilities", ["plan_id"], unique=False)
    op.create_index(op.f("ix_plan_capabilities_capability_id"), "plan_capabilities", ["capability_id"], unique=False)

    op.create_table(
        "officers",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("mobile", sa.String(), nullable=False),
        sa.Column("telegram_id", sa.String(), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Active"),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("rank", sa.String(), nullable=True),
        sa.Column("badge_number", sa.String(), nullable=True),
        sa.Column("station", sa.String(), nullable=True),
        sa.Column("plan_id", sa.String(), nullable=True),
        sa.Column("credits_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_queries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["rate_plans.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("credits_remaining >= 0", name="ck_officers_credits_non_negative"),
    )
    op.create_index(op.f("ix_officers_email"), "officers", ["email"], unique=True)
    op.create_index(op.f("ix_officers_mobile"), "officers", ["mobile"], unique=True)
    op.create_index(op.f("ix_officers_plan_id"), "officers", ["plan_id"], unique=False)

    op.create_table(
        "query_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("officer_id", sa.String(), nullable=False),
        sa.Column("officer_name", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False, server_default="PRO"),
        sa.Column("capability_key", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("input_data", sa.Text(), nullable=True),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("result_summary", sa.Text(), nullable=True),
        sa.Column("full_result", sa.JSON(), nullable=True),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_query_logs_officer_id"), "query_logs", ["officer_id"], unique=False)
    op.create_index(op.f("ix_query_logs_capability_key"), "query_logs", ["capability_key"], unique=False)
    op.create_index(op.f("ix_query_logs_category"), "query_logs", ["category"], unique=False)
    op.create_index(op.f("ix_query_logs_status"), "query_logs", ["status"], unique=False)
    op.create_index(op.f("ix_query_logs_created_at"), "query_logs", ["created_at"], unique=False)

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("officer_id", sa.String(), nullable=False),
        sa.Column("officer_name", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=True),
        sa.Column("payment_mode", sa.String(), nullable=True),
        sa.Column("remarks", sa.String(), nullable=True),
        sa.Column("query_id", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["query_id"], ["query_logs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_credit_transactions_officer_id"), "credit_transactions", ["officer_id"], unique=False)
    op.create_index(op.f("ix_credit_transactions_query_id"), "credit_transactions", ["query_id"], unique=False)
    op.create_index(op.f("ix_credit_transactions_created_at"), "credit_transactions", ["created_at"], unique=False)

    op.create_table(
        "officer_registrations",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("mobile", sa.String(), nullable=False),
        sa.Column("station", sa.String(), nullable=False),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("rank", sa.String(), nullable=True),
        sa.Column("badge_number", sa.String(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("officer_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["officer_id"], ["officers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_officer_registrations_email"), "officer_registrations", ["email"], unique=False)
    op.create_index(op.f("ix_officer_registrations_status"), "officer_registrations", ["status"], unique=False)
    op.create_index(op.f("ix_officer_registrations_created_at"), "officer_registrations", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_officer_registrations_created_at"), table_name="officer_registrations")
    op.drop_index(op.f("ix_officer_registrations_status"), table_name="officer_registrations")
    op.drop_index(op.f("ix_officer_registrations_email"), table_name="officer_registrations")
    op.drop_table("officer_registrations")

    op.drop_index(op.f("ix_credit_transactions_created_at"), table_name="credit_transactions")
    op.drop_index(op.f("ix_credit_transactions_query_id"), table_name="credit_transactions")
    op.drop_index(op.f("ix_credit_transactions_officer_id"), table_name="credit_transactions")
    op.drop_table("credit_transactions")

    op.drop_index(op.f("ix_query_logs_created_at"), table_name="query_logs")
    op.drop_index(op.f("ix_query_logs_status"), table_name="query_logs")
    op.drop_index(op.f("ix_query_logs_category"), table_name="query_logs")
    op.drop_index(op.f("ix_query_logs_capability_key"), table_name="query_logs")
    op.drop_index(op.f("ix_query_logs_officer_id"), table_name="query_logs")
    op.drop_table("query_logs")

    op.drop_index(op.f("ix_officers_plan_id"), table_name="officers")
    op.drop_index(op.f("ix_officers_mobile"), table_name="officers")
    op.drop_index(op.f("ix_officers_email"), table_name="officers")
    op.drop_table("officers")

    op.drop_index(op.f("ix_plan_capabilities_capability_id"), table_name="plan_capabilities")
    op.drop_index(op.f("ix_plan_capabilities_plan_id"), table_name="plan_capabilities")
    op.drop_table("plan_capabilities")

    op.drop_index(op.f("ix_capabilities_key"), table_name="capabilities")
    op.drop_table("capabilities")

    op.drop_table("rate_plans")

    op.drop_index(op.f("ix_admin_users_email"), table_name="admin_users")
    op.drop_table("admin_users")
