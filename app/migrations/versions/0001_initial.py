"""Initial dashboard schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_date",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_date",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("branch_name", sa.String(length=255), nullable=False),
        sa.Column("manager", sa.String(length=255), nullable=True),
        sa.Column("manager_phone", sa.String(length=64), nullable=True),
        sa.Column("branch_contact", sa.String(length=64), nullable=True),
        sa.Column("backup_contact", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Active"),
        sa.Column("map_link", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_branches_branch_name", "branches", ["branch_name"])

    op.create_table(
        "cleaners",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="Cleaner"),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("assigned_branch", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Active"),
        sa.Column("photo_url", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cleaners_name", "cleaners", ["name"])

    op.create_table(
        "complaints",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("complaint_type", sa.String(length=32), nullable=False, server_default="Service Quality"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=32), nullable=False, server_default="Medium"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Open"),
        *_timestamps(),
    )
    op.create_index("ix_complaints_branch", "complaints", ["branch"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.String(length=32), nullable=False, server_default="medium"),
        sa.Column("related_id", sa.String(length=64), nullable=True),
        sa.Column("related_entity", sa.String(length=64), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])

    op.create_table(
        "salary_logs",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("payment_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("month", sa.String(length=32), nullable=True),
        sa.Column("staff_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=64), nullable=True),
        sa.Column("gross_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("deductions", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("net_pay", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("work_log", JSON_DOCUMENT, nullable=False),
        sa.Column("transaction_slip_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="Paid"),
        *_timestamps(),
    )
    op.create_index("ix_salary_logs_payment_id", "salary_logs", ["payment_id"])
    op.create_index("ix_salary_logs_staff_name", "salary_logs", ["staff_name"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("ts_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_type", sa.String(length=16), nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("details", JSON_DOCUMENT, nullable=False),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_salary_logs_staff_name", table_name="salary_logs")
    op.drop_index("ix_salary_logs_payment_id", table_name="salary_logs")
    op.drop_table("salary_logs")

    op.drop_index("ix_notifications_is_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_complaints_branch", table_name="complaints")
    op.drop_table("complaints")

    op.drop_index("ix_cleaners_name", table_name="cleaners")
    op.drop_table("cleaners")

    op.drop_index("ix_branches_branch_name", table_name="branches")
    op.drop_table("branches")
