from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from academy.models.enrollment import PaymentStatus, EnrollmentSource
from academy.models.upi_payment import UpiPaymentStatus
from academy.schemas.base import CamelModel


# ========== Razorpay ==========

class CreateOrderRequest(CamelModel):
    course_id: Optional[str] = None


class TestSeriesOrderRequest(CamelModel):
    test_series_id: Optional[str] = None


class VerifyPaymentRequest(CamelModel):
    """Fields posted back by Razorpay checkout, plus the purchased item"""
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    course_id: Optional[str] = None
    test_series_id: Optional[str] = None


# ========== Manual UPI ==========

class ItemReference(CamelModel):
    """Exactly one of course_id / test_series_id"""
    course_id: Optional[str] = None
    test_series_id: Optional[str] = None

    @model_validator(mode='after')
    def require_single_item(self):
        if bool(self.course_id) == bool(self.test_series_id):
            raise ValueError("Provide either courseId or testSeriesId")
        return self


class UpiInitiateRequest(ItemReference):
    pass


class PublicUpiInitiateRequest(CamelModel):
    # Presence is checked by the service so the 400 carries one combined message
    course_id: Optional[str] = None
    test_series_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None


class SubmitUtrRequest(ItemReference):
    utr_number: str = Field(..., min_length=6, max_length=64)

    @field_validator('utr_number')
    @classmethod
    def strip_utr(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("UTR number is required")
        return v


class UpiPaymentResponse(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    course_id: Optional[str] = None
    course_title: Optional[str] = None
    test_series_id: Optional[str] = None
    test_series_title: Optional[str] = None
    amount: int
    utr_number: str
    status: UpiPaymentStatus
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    student_id: Optional[str] = None
    created_at: datetime


# ========== Enrollments ==========

class EnrollmentResponse(CamelModel):
    id: str
    course_id: Optional[str] = None
    test_series_id: Optional[str] = None
    payment_status: PaymentStatus
    source: EnrollmentSource
    receipt_number: Optional[str] = None
    amount: Optional[int] = None
    enrolled_at: datetime


class AdminEnrollRequest(CamelModel):
    """Identify the student by id, or by email / mobile"""
    student_id: Optional[str] = None
    email: Optional[EmailStr] = None
    mobile: Optional[str] = None
    amount: Optional[int] = Field(None, ge=0)
    course_id: Optional[str] = None
    test_series_id: Optional[str] = None

    @model_validator(mode='after')
    def require_student_reference(self):
        if not (self.student_id or self.email or self.mobile):
            raise ValueError("studentId, email or mobile is required")
        return self


class RemoveAccessRequest(CamelModel):
    course_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)


# ========== Legacy lead capture ==========

class LeadCreate(CamelModel):
    name: str = Field(..., min_length=1)
    mobile: str = Field(..., pattern=r'^\d{10}$')
    email: Optional[EmailStr] = None
    course: Optional[str] = None
