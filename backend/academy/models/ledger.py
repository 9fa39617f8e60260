from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Index, text
from datetime import datetime

from academy.core.database import Base, generate_uuid


class LegacyUser(Base):
    """
    Flat payment ledger kept for reporting and the Excel export.

    Two kinds of rows live here:
    - paid rows written once by Razorpay verification and never updated
    - lead rows (payment_status NULL) captured from the public enquiry form;
      a mobile number may appear on at most one lead row
    """
    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_lead_mobile",
            "mobile",
            unique=True,
            sqlite_where=text("payment_status IS NULL"),
            postgresql_where=text("payment_status IS NULL"),
        ),
        Index("ix_users_course_payment_date", "course", "payment_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    mobile = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    course = Column(String(255), nullable=True)  # course title, denormalized

    amount = Column(Integer, nullable=True)
    receipt_number = Column(String(64), unique=True, nullable=True)
    payment_date = Column(DateTime, nullable=True)
    payment_status = Column(String(20), nullable=True)
    razorpay_order_id = Column(String(100), nullable=True)
    razorpay_payment_id = Column(String(100), nullable=True)

    student_id = Column(String(36), ForeignKey("students.id"), nullable=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<LegacyUser {self.mobile} {self.course} ({self.payment_status})>"
