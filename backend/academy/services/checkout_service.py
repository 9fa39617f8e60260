"""
Razorpay checkout: order issuance and verification -> enrollment.

State machine per purchase: initiated (order issued, nothing stored)
-> verified (signature matches) -> enrolled (paid enrollment + ledger row,
committed together).
"""

import time
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.config import settings
from academy.core.exceptions import ConflictError, SignatureMismatchError
from academy.core.logging_config import logger
from academy.models.account import Student
from academy.models.enrollment import EnrollmentSource
from academy.models.ledger import LegacyUser
from academy.schemas.payment import VerifyPaymentRequest
from academy.services.enrollment_service import (
    CatalogItem,
    ensure_not_enrolled,
    grant_enrollment,
    load_item,
)
from academy.services.pricing import razorpay_payable_amount, to_paise
from academy.services.razorpay_service import razorpay_service
from academy.services.receipts import (
    COURSE_RECEIPT_PREFIX,
    TEST_SERIES_RECEIPT_PREFIX,
    issue_receipt_number,
)


def _item_key(item: CatalogItem) -> str:
    return "course" if item.is_course else "testSeries"


async def create_order(db: AsyncSession, student: Student, item: CatalogItem) -> Dict[str, Any]:
    """Issue a Razorpay order for the grossed-up price. Writes nothing locally."""
    await ensure_not_enrolled(db, student.id, item)

    amount = razorpay_payable_amount(item.price)
    if item.is_course:
        receipt = f"receipt_{int(time.time() * 1000)}"
        notes = {
            "studentId": student.id,
            "courseId": item.id,
            "studentName": student.name,
            "courseName": item.title,
        }
    else:
        receipt = f"testseries_{int(time.time() * 1000)}"
        notes = {
            "studentId": student.id,
            "testSeriesId": item.id,
            "studentName": student.name,
            "testSeriesName": item.title,
        }

    order = await razorpay_service.create_order(to_paise(amount), receipt, notes)
    logger.log_payment_event("Payment", "order issued", student.id, amount, order.get("id"))

    return {
        "success": True,
        "orderId": order["id"],
        "amount": amount,
        "amountInPaise": to_paise(amount),
        "currency": settings.PAYMENT_CURRENCY,
        "key": settings.RAZORPAY_KEY_ID,
        _item_key(item): {"id": item.id, "title": item.title, "price": item.price},
    }


async def verify_payment(
    db: AsyncSession,
    student: Student,
    request: VerifyPaymentRequest,
) -> Dict[str, Any]:
    """Check the checkout signature, then grant the enrollment and write the ledger in one commit"""
    if not razorpay_service.verify_signature(
        request.razorpay_order_id, request.razorpay_payment_id, request.razorpay_signature
    ):
        logger.warning(
            f"[Payment] Signature mismatch for order {request.razorpay_order_id} (student {student.id})"
        )
        raise SignatureMismatchError()

    item = await load_item(
        db,
        course_id=request.course_id,
        test_series_id=request.test_series_id,
        require_active=False,
    )
    await ensure_not_enrolled(db, student.id, item)

    prefix = COURSE_RECEIPT_PREFIX if item.is_course else TEST_SERIES_RECEIPT_PREFIX
    receipt_number = await issue_receipt_number(db, prefix)

    # Read before the write path; a rollback inside grant_enrollment expires the instance
    student_id, student_name, student_mobile, student_email = (
        student.id, student.name, student.mobile, student.email
    )

    enrollment = await grant_enrollment(
        db,
        student_id,
        item,
        source=EnrollmentSource.RAZORPAY,
        receipt_number=receipt_number,
        amount=item.price,
        razorpay_order_id=request.razorpay_order_id,
        razorpay_payment_id=request.razorpay_payment_id,
    )
    enrolled_at = enrollment.enrolled_at

    if item.is_course:
        db.add(LegacyUser(
            name=student_name,
            mobile=student_mobile,
            email=student_email,
            course=item.title,
            amount=item.price,
            receipt_number=receipt_number,
            payment_date=datetime.utcnow(),
            payment_status="paid",
            razorpay_order_id=request.razorpay_order_id,
            razorpay_payment_id=request.razorpay_payment_id,
            student_id=student_id,
            course_id=item.id,
        ))

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"[Payment] Could not record verified payment {request.razorpay_payment_id}: {e}")
        raise ConflictError("Payment could not be recorded, please retry verification", code="LEDGER_CONFLICT")

    logger.log_payment_event(
        "Payment", "verified and enrolled", student_id, item.price, receipt_number,
        razorpay_payment_id=request.razorpay_payment_id,
    )

    message = (
        "Payment verified and enrollment successful"
        if item.is_course
        else "Payment verified and test series purchased successfully"
    )
    return {
        "success": True,
        "message": message,
        "receiptNumber": receipt_number,
        _item_key(item): {"id": item.id, "title": item.title},
        "enrollment": {
            "enrolledAt": enrolled_at,
            "receiptNumber": receipt_number,
            "amount": item.price,
        },
    }
