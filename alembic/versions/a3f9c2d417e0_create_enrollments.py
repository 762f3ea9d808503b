"""create enrollments + enrollment_sequences

Revision ID: a3f9c2d417e0
Revises:
Create Date: 2026-10-19 10:12:04.118203
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a3f9c2d417e0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# primo codice assegnato = PL-1000
ENROLLMENT_CODE_START = 1000

enrollment_package = sa.Enum("Entry Pack", "Elite Pack", "Pro Pack", name="enrollment_package")
enrollment_payment_method = sa.Enum("Credit Card", "Bank Transfer", name="enrollment_payment_method")
enrollment_status = sa.Enum("Pending", "Active", "Suspended", "Terminated", name="enrollment_status")
enrollment_role = sa.Enum("user", "admin", name="enrollment_role")


def upgrade() -> None:
    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enrollment_id", sa.String(length=32), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("first_name_key", sa.String(length=255), nullable=False),
        sa.Column("last_name_key", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("sponsor_name", sa.String(length=200), nullable=False),
        sa.Column("sponsor_id", sa.String(length=32), nullable=True),
        sa.Column("package", enrollment_package, nullable=False),
        sa.Column("payment_method", enrollment_payment_method, nullable=True),
        sa.Column("status", enrollment_status, nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("fast_start_bonus", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("personal_volume", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("team_volume", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("sales_volume", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("role", enrollment_role, nullable=False, server_default=sa.text("'user'")),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_index("ix_enrollments_enrollment_id", "enrollments", ["enrollment_id"], unique=True)
    op.create_index("ix_enrollments_email", "enrollments", ["email"], unique=True)
    op.create_index("ix_enrollments_sponsor_id", "enrollments", ["sponsor_id"])
    op.create_index("ix_enrollments_status", "enrollments", ["status"])
    op.create_index("ix_enrollments_name_key", "enrollments", ["first_name_key", "last_name_key"])

    op.create_table(
        "enrollment_sequences",
        sa.Column("name", sa.String(length=50), primary_key=True),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    # last_value = ultimo numero assegnato → il primo UPDATE restituisce 1000
    op.execute(
        sa.text(
            "INSERT INTO enrollment_sequences (name, last_value) VALUES ('enrollment_code', :v)"
        ).bindparams(v=ENROLLMENT_CODE_START - 1)
    )


def downgrade() -> None:
    op.drop_table("enrollment_sequences")

    op.drop_index("ix_enrollments_name_key", table_name="enrollments")
    op.drop_index("ix_enrollments_status", table_name="enrollments")
    op.drop_index("ix_enrollments_sponsor_id", table_name="enrollments")
    op.drop_index("ix_enrollments_email", table_name="enrollments")
    op.drop_index("ix_enrollments_enrollment_id", table_name="enrollments")
    op.drop_table("enrollments")

    bind = op.get_bind()
    for enum_type in (enrollment_role, enrollment_status, enrollment_payment_method, enrollment_package):
        enum_type.drop(bind, checkfirst=True)
