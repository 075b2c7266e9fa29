"""Create applications table"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_applications"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("app_id", sa.String(length=100), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("applied_date", sa.Date(), nullable=True),
        sa.Column("sanctioned_date", sa.Date(), nullable=True),
        sa.Column("uploaded_by", sa.String(length=100), nullable=False, server_default="System"),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("loan_type", sa.String(length=100), nullable=False, server_default="Personal Loan"),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("document_status", sa.String(length=50), nullable=False, server_default="Pending"),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "last_updated",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
        ),
        sa.CheckConstraint("amount IS NULL OR amount >= 0", name="ck_application_amount_nonneg"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'under_review', 'sanctioned')",
            name="ck_application_status",
        ),
        sa.CheckConstraint("priority IN ('high', 'medium', 'low')", name="ck_application_priority"),
    )
    op.create_index("ix_applications_app_id", "applications", ["app_id"], unique=True)
    op.create_index("ix_applications_branch", "applications", ["branch"])
    op.create_index("ix_applications_status", "applications", ["status"])


def downgrade() -> None:
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_index("ix_applications_branch", table_name="applications")
    op.drop_index("ix_applications_app_id", table_name="applications")
    op.drop_table("applications")
