"""create organizations, org_members and import_jobs tables

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("address", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=2), nullable=True, comment="ISO-3166 alpha-2 code"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("address"),
    )

    op.create_table(
        "org_members",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("org_address", sa.String(length=64), nullable=False),
        sa.Column("member_number", sa.String(length=128), nullable=True),
        sa.Column("national_id", sa.String(length=128), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("surname", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True, comment="E.164 form, e.g. +34612345678"),
        sa.Column("birth_date", sa.String(length=10), nullable=True, comment="Normalized YYYY-MM-DD"),
        sa.Column("parsed_birth_date", sa.Date(), nullable=True),
        sa.Column("hashed_password", sa.LargeBinary(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("other", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["org_address"], ["organizations.address"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_address", "member_number", name="uq_org_members_member_number"),
        sa.UniqueConstraint("org_address", "national_id", name="uq_org_members_national_id"),
    )
    op.create_index("ix_org_members_org_address", "org_members", ["org_address"], unique=False)

    op.create_table(
        "import_jobs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(length=32), nullable=False, comment="Lowercase hex of 16 random bytes"),
        sa.Column("job_type", sa.String(length=50), nullable=False, comment="org_members, census_participants"),
        sa.Column("org_address", sa.String(length=64), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("added", sa.Integer(), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id"),
    )
    op.create_index(
        "ix_import_jobs_org_address_created_at",
        "import_jobs",
        ["org_address", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_import_jobs_org_address_job_type",
        "import_jobs",
        ["org_address", "job_type"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_import_jobs_org_address_job_type", table_name="import_jobs")
    op.drop_index("ix_import_jobs_org_address_created_at", table_name="import_jobs")
    op.drop_table("import_jobs")
    op.drop_index("ix_org_members_org_address", table_name="org_members")
    op.drop_table("org_members")
    op.drop_table("organizations")
