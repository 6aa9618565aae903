"""Create schools and terms tables

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

What:  Creates `schools` and `terms`, plus the partial unique index that
       allows at most one Active term per school (NULL school_id counts as
       one more school, the global partition).
How:   The index expression is coalesce(school_id::text, '') so NULLs collide
       with each other; plain unique indexes treat every NULL as distinct.

Rollback: downgrade() drops both tables (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "schools",
        sa.Column("id", sa.Uuid(), nullable=False, comment="Unique identifier"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("subtitle", sa.String(200), nullable=True),
        sa.Column("school_type", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("contact_person", sa.String(200), nullable=True),
        sa.Column("contact_person_email", sa.String(255), nullable=True),
        sa.Column("contact_person_phone", sa.String(50), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "terms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "school_id",
            sa.Uuid(),
            sa.ForeignKey("schools.id", ondelete="CASCADE"),
            nullable=True,
            comment="Owning school; NULL for the global partition",
        ),
        sa.Column("session", sa.String(20), nullable=False),
        # Stored as VARCHAR + CHECK rather than a native ENUM type
        sa.Column(
            "term",
            sa.Enum("First", "Second", "Third", name="term_name", native_enum=False, length=10),
            nullable=False,
        ),
        sa.Column("start", sa.Date(), nullable=False),
        sa.Column("end", sa.Date(), nullable=False),
        sa.Column(
            "next_term",
            sa.Date(),
            nullable=True,
            comment="First day of the following term (printed on report cards)",
        ),
        sa.Column("days_open", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("Active", "Inactive", name="term_status", native_enum=False, length=10),
            nullable=False,
            server_default=sa.text("'Active'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "uq_terms_one_active_per_school",
        "terms",
        [sa.text("coalesce(CAST(school_id AS VARCHAR(36)), '')")],
        unique=True,
        postgresql_where=sa.text("status = 'Active'"),
        sqlite_where=sa.text("status = 'Active'"),
    )

    # "Newest remaining term of a school" after deleting the Active one
    op.create_index(
        "idx_terms_school_created",
        "terms",
        ["school_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_terms_school_created", table_name="terms")
    op.drop_index("uq_terms_one_active_per_school", table_name="terms")
    op.drop_table("terms")
    op.drop_table("schools")
