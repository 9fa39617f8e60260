"""
RAZORPAY PAYMENT INTEGRATION
============================
Order creation and checkout verification for courses and test series.

Flow:
1. Student clicks Buy → /payments/create-order → Returns Razorpay order_id
2. Frontend opens Razorpay checkout with order_id
3. Student completes payment → checkout returns order id, payment id, signature
4. Frontend calls /payments/verify-payment → Verify signature & enroll
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.exceptions import ValidationError
from academy.models.account import Student
from academy.modules.auth.dependencies import require_student_account
from academy.schemas.payment import CreateOrderRequest, TestSeriesOrderRequest, VerifyPaymentRequest
from academy.services import checkout_service
from academy.services.enrollment_service import COURSE, TEST_SERIES, list_enrollments, load_item

router = APIRouter()


# ========== Courses ==========

@router.post("/create-order")
async def create_course_order(
    payload: CreateOrderRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    """Step 1: issue a Razorpay order for the grossed-up course price"""
    if not payload.course_id:
        raise ValidationError("Course ID is required", field="courseId")
    item = await load_item(db, course_id=payload.course_id)
    return await checkout_service.create_order(db, student, item)


@router.post("/verify-payment")
async def verify_course_payment(
    payload: VerifyPaymentRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    """Step 2: verify the checkout signature, enroll, and write the ledger row"""
    payload.test_series_id = None
    return await checkout_service.verify_payment(db, student, payload)


@router.get("/enrollments")
async def get_my_enrollments(
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    enrollments = await list_enrollments(db, student.id, COURSE)
    return {
        "success": True,
        "enrollments": [
            {
                "course": {
                    "id": e.course.id,
                    "title": e.course.title,
                    "description": e.course.description,
                    "price": e.course.price,
                    "thumbnail": e.course.thumbnail,
                } if e.course else None,
                "paymentStatus": e.payment_status.value,
                "source": e.source.value,
                "receiptNumber": e.receipt_number,
                "amount": e.amount,
                "enrolledAt": e.enrolled_at,
            }
            for e in enrollments
        ],
    }


# ========== Test series ==========

@router.post("/test-series/create-order")
async def create_test_series_order(
    payload: TestSeriesOrderRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    if not payload.test_series_id:
        raise ValidationError("Test series ID is required", field="testSeriesId")
    item = await load_item(db, test_series_id=payload.test_series_id)
    return await checkout_service.create_order(db, student, item)


@router.post("/test-series/verify-payment")
async def verify_test_series_payment(
    payload: VerifyPaymentRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    payload.course_id = None
    return await checkout_service.verify_payment(db, student, payload)


@router.get("/test-series/purchases")
async def get_my_test_series(
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    purchases = await list_enrollments(db, student.id, TEST_SERIES)
    return {
        "success": True,
        "purchases": [
            {
                "testSeries": {
                    "id": e.test_series.id,
                    "title": e.test_series.title,
                    "description": e.test_series.description,
                    "price": e.test_series.price,
                    "numberOfTests": e.test_series.number_of_tests,
                } if e.test_series else None,
                "paymentStatus": e.payment_status.value,
                "source": e.source.value,
                "receiptNumber": e.receipt_number,
                "amount": e.amount,
                "purchasedAt": e.enrolled_at,
            }
            for e in purchases
        ],
    }
