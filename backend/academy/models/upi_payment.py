from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Index, Enum as SQLEnum
from datetime import datetime
import enum

from academy.core.database import Base, generate_uuid
from academy.models.catalog import enum_values


class UpiPaymentStatus(str, enum.Enum):
    """pending -> approved | rejected; both targets are terminal"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UpiPayment(Base):
    """One manual UPI submission, identified by its UTR"""
    __tablename__ = "upi_payments"
    __table_args__ = (
        Index("ix_upi_payments_email_course_status", "email", "course_id", "status"),
        Index("ix_upi_payments_student_status", "student_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)

    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True)
    course_title = Column(String(255), nullable=True)
    test_series_id = Column(String(36), ForeignKey("test_series.id"), nullable=True)
    test_series_title = Column(String(255), nullable=True)

    amount = Column(Integer, nullable=False)  # catalog price in rupees
    utr_number = Column(String(64), unique=True, nullable=False)

    status = Column(
        SQLEnum(UpiPaymentStatus, values_callable=enum_values, native_enum=False, length=20),
        default=UpiPaymentStatus.PENDING,
        nullable=False,
    )
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(String(36), ForeignKey("admins.id"), nullable=True)

    student_id = Column(String(36), ForeignKey("students.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def item_title(self) -> str:
        return self.course_title or self.test_series_title or ""

    def __repr__(self):
        return f"<UpiPayment {self.utr_number} ({self.status})>"
