# Re-export all models for convenient imports
from academy.models.account import Student, Admin
from academy.models.catalog import (
    Course,
    CourseCategory,
    TestSeries,
    TestSeriesCategory,
    Video,
    Document,
)
from academy.models.enrollment import Enrollment, PaymentStatus, EnrollmentSource
from academy.models.upi_payment import UpiPayment, UpiPaymentStatus
from academy.models.ledger import LegacyUser
from academy.models.site import HomepageAd, Otp

__all__ = [
    # Identity
    "Student",
    "Admin",
    # Catalog
    "Course",
    "CourseCategory",
    "TestSeries",
    "TestSeriesCategory",
    "Video",
    "Document",
    # Ledger
    "Enrollment",
    "PaymentStatus",
    "EnrollmentSource",
    "UpiPayment",
    "UpiPaymentStatus",
    "LegacyUser",
    # Site
    "HomepageAd",
    "Otp",
]
