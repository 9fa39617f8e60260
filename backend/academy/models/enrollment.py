from sqlalchemy import (
    Column, String, DateTime, Integer, ForeignKey, Index, CheckConstraint, text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from academy.core.database import Base, generate_uuid
from academy.models.catalog import enum_values


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class EnrollmentSource(str, enum.Enum):
    """Which proof granted (or will grant) the entitlement"""
    RAZORPAY = "razorpay"
    UPI = "upi"
    PUBLIC_UPI = "public_upi"
    ADMIN = "admin"


_PAID_ONLY = text("payment_status = 'paid'")
_HAS_PAYMENT_ID = text("razorpay_payment_id IS NOT NULL")


class Enrollment(Base):
    """
    One student's relationship to one course or one test series.

    The partial unique indexes allow any number of pending rows but at most
    one paid row per (student, course) and per (student, test series). A
    Razorpay payment id backs at most one enrollment.
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        CheckConstraint(
            "(course_id IS NULL) <> (test_series_id IS NULL)",
            name="ck_enrollments_single_item",
        ),
        Index(
            "uq_enrollments_paid_course",
            "student_id", "course_id",
            unique=True,
            sqlite_where=_PAID_ONLY,
            postgresql_where=_PAID_ONLY,
        ),
        Index(
            "uq_enrollments_paid_test_series",
            "student_id", "test_series_id",
            unique=True,
            sqlite_where=_PAID_ONLY,
            postgresql_where=_PAID_ONLY,
        ),
        Index(
            "uq_enrollments_razorpay_payment",
            "razorpay_payment_id",
            unique=True,
            sqlite_where=_HAS_PAYMENT_ID,
            postgresql_where=_HAS_PAYMENT_ID,
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True, index=True)
    test_series_id = Column(String(36), ForeignKey("test_series.id"), nullable=True, index=True)

    payment_status = Column(
        SQLEnum(PaymentStatus, values_callable=enum_values, native_enum=False, length=20),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    source = Column(
        SQLEnum(EnrollmentSource, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
    )
    receipt_number = Column(String(64), nullable=True)
    amount = Column(Integer, nullable=True)  # rupees
    razorpay_order_id = Column(String(100), nullable=True)
    razorpay_payment_id = Column(String(100), nullable=True)

    enrolled_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    course = relationship("Course", lazy="selectin")
    test_series = relationship("TestSeries", lazy="selectin")

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def __repr__(self):
        item = self.course_id or self.test_series_id
        return f"<Enrollment {self.student_id} -> {item} ({self.payment_status})>"
