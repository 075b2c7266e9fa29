import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)

from loanops.db.base import Base


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint("amount IS NULL OR amount >= 0", name="ck_application_amount_nonneg"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'under_review', 'sanctioned')",
            name="ck_application_status",
        ),
        CheckConstraint(
            "priority IN ('high', 'medium', 'low')",
            name="ck_application_priority",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    app_id = Column(String(100), nullable=False, unique=True, index=True)
    customer_name = Column(String(255), nullable=False)
    branch = Column(String(255), nullable=False, index=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    amount = Column(Numeric(18, 2), nullable=True)
    applied_date = Column(Date, nullable=True)
    sanctioned_date = Column(Date, nullable=True)
    uploaded_by = Column(String(100), nullable=False, default="System")
    priority = Column(String(10), nullable=False, default="medium")
    loan_type = Column(String(100), nullable=False, default="Personal Loan")
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)
    document_status = Column(String(50), nullable=False, default="Pending")
    remarks = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_updated = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
