"""baseline schema

Revision ID: 0001_baseline_schema
Revises: None
Create Date: 2026-10-19

Tables of the franchise lifecycle core: profiles, franchise_applications,
contract_templates, signed_contracts and the workflow_events journal.

Notes:
- Local dev may already have tables from `Base.metadata.create_all()`; the online-mode
  upgrade skips tables and indexes that already exist.
- signed_contracts.application_id is unique: at most one signed contract per application.
- signed_contracts.contract_number is unique.
- franchise_applications.open_application_key is unique (user_id while open, NULL once terminal).
"""

from __future__ import annotations

from alembic import context, op
import sqlalchemy as sa


revision = "0001_baseline_schema"
down_revision = None
branch_labels = None
depends_on = None

_TABLES = ("workflow_events", "signed_contracts", "contract_templates", "franchise_applications", "profiles")


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return _insp().has_table(name)


def _get_indexes(table: str) -> set[str]:
    return {str(i.get("name") or "") for i in _insp().get_indexes(table)}


def _create_index(name: str, table: str, cols: list[str], *, unique: bool = False) -> None:
    if not _is_offline() and name in _get_indexes(table):
        return
    op.create_index(name, table, cols, unique=unique)


def _needs(table: str) -> bool:
    return _is_offline() or not _has_table(table)


def upgrade() -> None:
    if _needs("profiles"):
        op.create_table(
            "profiles",
            sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("full_name", sa.String(length=128), server_default="", nullable=False),
            sa.Column("role", sa.String(length=32), server_default="applicant", nullable=False),
            sa.Column("status", sa.String(length=32), server_default="pending_activation", nullable=False),
            sa.Column("email", sa.String(length=256), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("organization_name", sa.String(length=256), nullable=True),
            sa.Column("region", sa.String(length=128), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
    _create_index("ix_profiles_id", "profiles", ["id"], unique=True)
    _create_index("ix_profiles_role", "profiles", ["role"])
    _create_index("ix_profiles_status", "profiles", ["status"])

    if _needs("franchise_applications"):
        op.create_table(
            "franchise_applications",
            sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("contact_name", sa.String(length=128), server_default="", nullable=False),
            sa.Column("contact_phone", sa.String(length=32), server_default="", nullable=False),
            sa.Column("contact_email", sa.String(length=256), server_default="", nullable=False),
            sa.Column("intended_city", sa.String(length=128), server_default="", nullable=False),
            sa.Column("investment_amount", sa.String(length=64), nullable=True),
            sa.Column("experience_description", sa.Text(), nullable=True),
            sa.Column("documents", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=32), server_default="submitted", nullable=False),
            sa.Column("reviewed_by_user_id", sa.String(length=64), nullable=True),
            sa.Column("review_notes", sa.Text(), nullable=True),
            sa.Column("hq_comments_for_applicant", sa.Text(), nullable=True),
            sa.Column("open_application_key", sa.String(length=64), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("open_application_key", name="uq_franchise_applications_open_key"),
        )
    _create_index("ix_franchise_applications_id", "franchise_applications", ["id"], unique=True)
    _create_index("ix_franchise_applications_user_id", "franchise_applications", ["user_id"])
    _create_index("ix_franchise_applications_status", "franchise_applications", ["status"])
    _create_index("ix_franchise_applications_submitted_at", "franchise_applications", ["submitted_at"])

    if _needs("contract_templates"):
        op.create_table(
            "contract_templates",
            sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=256), server_default="", nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("file_name", sa.String(length=256), server_default="", nullable=False),
            sa.Column("storage_path", sa.String(length=512), server_default="", nullable=False),
            sa.Column("status", sa.String(length=32), server_default="active", nullable=False),
            sa.Column("uploaded_by_user_id", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )
    _create_index("ix_contract_templates_id", "contract_templates", ["id"], unique=True)
    _create_index("ix_contract_templates_status", "contract_templates", ["status"])
    _create_index("ix_contract_templates_created_at", "contract_templates", ["created_at"])

    if _needs("signed_contracts"):
        op.create_table(
            "signed_contracts",
            sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("application_id", sa.String(length=64), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("signature_url", sa.String(length=1024), server_default="", nullable=False),
            sa.Column("contract_number", sa.String(length=96), nullable=False),
            sa.Column("status", sa.String(length=32), server_default="signed", nullable=False),
            sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("application_id", name="uq_signed_contracts_application"),
            sa.UniqueConstraint("contract_number", name="uq_signed_contracts_contract_number"),
        )
    _create_index("ix_signed_contracts_id", "signed_contracts", ["id"], unique=True)
    _create_index("ix_signed_contracts_application_id", "signed_contracts", ["application_id"])
    _create_index("ix_signed_contracts_user_id", "signed_contracts", ["user_id"])
    _create_index("ix_signed_contracts_contract_number", "signed_contracts", ["contract_number"])

    if _needs("workflow_events"):
        op.create_table(
            "workflow_events",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("run_id", sa.String(length=64), nullable=False),
            sa.Column("workflow", sa.String(length=64), server_default="", nullable=False),
            sa.Column("stage", sa.String(length=64), server_default="", nullable=False),
            sa.Column("attempt", sa.Integer(), server_default="0", nullable=False),
            sa.Column("actor_id", sa.String(length=64), server_default="", nullable=False),
            sa.Column("role", sa.String(length=32), server_default="", nullable=False),
            sa.Column("type", sa.String(length=64), server_default="", nullable=False),
            sa.Column("subject_id", sa.String(length=64), server_default="", nullable=False),
            sa.Column("payload_json", sa.Text(), server_default="{}", nullable=False),
            sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_workflow_events_run_id", "workflow_events", ["run_id"])
    _create_index("ix_workflow_events_workflow", "workflow_events", ["workflow"])
    _create_index("ix_workflow_events_subject_id", "workflow_events", ["subject_id"])


def downgrade() -> None:
    for table in _TABLES:
        if _is_offline() or _has_table(table):
            op.drop_table(table)
