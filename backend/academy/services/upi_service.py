"""
Manual UPI payments.

A buyer pays through any UPI app using the generated upi:// link, then
submits the UTR (bank reference) for that transfer. An admin checks the
bank statement and approves or rejects the submission:

    none -> pending -> approved | rejected

Both transitions are single conditional UPDATEs on status='pending', so
approving twice, or approving after a rejection, fails with "not pending".
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.exceptions import (
    AlreadyEnrolledError,
    AuthorizationError,
    ConflictError,
    DuplicateUtrError,
    PaymentNotFoundError,
    PaymentNotPendingError,
    PendingVerificationExistsError,
    StudentNotFoundError,
    ValidationError,
)
from academy.core.logging_config import logger
from academy.core.security import generate_temp_password, get_password_hash
from academy.models.account import Student
from academy.models.enrollment import EnrollmentSource
from academy.models.upi_payment import UpiPayment, UpiPaymentStatus
from academy.modules.auth.dependencies import CurrentAccount
from academy.schemas.payment import (
    PublicUpiInitiateRequest,
    SubmitUtrRequest,
    UpiInitiateRequest,
    UpiPaymentResponse,
)
from academy.services.enrollment_service import (
    CatalogItem,
    add_pending_enrollment,
    ensure_not_enrolled,
    grant_enrollment,
    is_enrolled,
    load_item,
)
from academy.services.pricing import build_upi_url, upi_payable_amount


def serialize_payment(payment: UpiPayment) -> Dict[str, Any]:
    return UpiPaymentResponse.model_validate(payment).model_dump(by_alias=True, mode="json")


def _payment_link(item: CatalogItem, email: str) -> Dict[str, Any]:
    amount = upi_payable_amount(item.price)
    return {
        "upiUrl": build_upi_url(amount, f"Payment for {item.title} - {email}"),
        "amount": float(amount),
        "item": item.summary(),
    }


async def initiate(db: AsyncSession, student: Student, request: UpiInitiateRequest) -> Dict[str, Any]:
    """Payment link for a logged-in student"""
    item = await load_item(db, request.course_id, request.test_series_id)
    await ensure_not_enrolled(db, student.id, item)

    logger.info(f"[UPI] Payment link issued to student {student.id} for {item.label} {item.id}")
    return {"success": True, **_payment_link(item, student.email)}


async def initiate_public(db: AsyncSession, request: PublicUpiInitiateRequest) -> Dict[str, Any]:
    """
    Payment link for an anonymous buyer.

    The buyer is pre-registered by email (with a generated password they
    receive later) and a pending enrollment records the purchase intent.
    """
    item_id = request.course_id or request.test_series_id
    email = (request.email or "").strip().lower()
    phone = (request.phone or "").strip()
    if not item_id or not email or not phone:
        raise ValidationError("Item ID, email and phone are required")

    item = await load_item(db, request.course_id, request.test_series_id)

    student = (await db.execute(select(Student).where(Student.email == email))).scalar_one_or_none()
    temp_password: Optional[str] = None

    if student is None:
        mobile_owner = (await db.execute(select(Student.id).where(Student.mobile == phone))).first()
        if mobile_owner is not None:
            raise ConflictError("This mobile number is already registered with another account",
                                code="MOBILE_TAKEN")

        temp_password = generate_temp_password()
        student = Student(
            name=(request.name or "").strip() or email.split("@")[0],
            email=email,
            mobile=phone,
            password_hash=get_password_hash(temp_password),
            temp_password=temp_password,
        )
        db.add(student)
        await db.flush()
        logger.info(f"[UPI] Pre-registered student {student.id} ({email}) from public checkout")

    student_id = student.id
    await add_pending_enrollment(db, student_id, item, source=EnrollmentSource.PUBLIC_UPI)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An account with this email or mobile already exists", code="ACCOUNT_EXISTS")

    return {
        "success": True,
        **_payment_link(item, email),
        "preCreated": {"studentId": student_id, "tempPassword": temp_password},
    }


async def submit_utr(db: AsyncSession, student: Student, request: SubmitUtrRequest) -> Dict[str, Any]:
    item = await load_item(db, request.course_id, request.test_series_id, require_active=False)

    if await is_enrolled(db, student.id, item):
        raise AlreadyEnrolledError(f"You already have access to this {item.label}")

    item_column = UpiPayment.course_id if item.is_course else UpiPayment.test_series_id
    pending = await db.execute(
        select(UpiPayment.id).where(
            UpiPayment.student_id == student.id,
            item_column == item.id,
            UpiPayment.status == UpiPaymentStatus.PENDING,
        ).limit(1)
    )
    if pending.first() is not None:
        raise PendingVerificationExistsError()

    duplicate = await db.execute(select(UpiPayment.id).where(UpiPayment.utr_number == request.utr_number))
    if duplicate.first() is not None:
        raise DuplicateUtrError()

    payment = UpiPayment(
        name=student.name,
        email=student.email,
        phone=student.mobile,
        course_id=item.id if item.is_course else None,
        course_title=item.title if item.is_course else None,
        test_series_id=None if item.is_course else item.id,
        test_series_title=None if item.is_course else item.title,
        amount=item.price,
        utr_number=request.utr_number,
        status=UpiPaymentStatus.PENDING,
        student_id=student.id,
    )
    db.add(payment)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateUtrError()

    logger.log_payment_event("UPI", "UTR submitted", payment.student_id, payment.amount, payment.utr_number)

    return {
        "success": True,
        "message": "Payment submitted for verification",
        "receipt": {
            "id": payment.id,
            "utrNumber": payment.utr_number,
            "item": item.summary(),
            "amount": payment.amount,
            "status": payment.status.value,
            "submittedAt": payment.created_at.isoformat(),
        },
    }


async def _transition(db: AsyncSession, payment_id: str, values: Dict[str, Any]) -> UpiPayment:
    payment = await db.get(UpiPayment, payment_id)
    if payment is None:
        raise PaymentNotFoundError(payment_id)

    result = await db.execute(
        update(UpiPayment)
        .where(UpiPayment.id == payment_id, UpiPayment.status == UpiPaymentStatus.PENDING)
        .values(updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise PaymentNotPendingError()
    return payment


async def approve(db: AsyncSession, payment_id: str, admin: CurrentAccount) -> Dict[str, Any]:
    """Mark the submission approved and grant the paid enrollment, in one commit"""
    payment = await _transition(db, payment_id, {
        "status": UpiPaymentStatus.APPROVED,
        "approved_at": datetime.utcnow(),
        "approved_by": admin.id,
    })
    utr_number, amount, email = payment.utr_number, payment.amount, payment.email

    student_id = payment.student_id
    if student_id is None:
        student_id = (await db.execute(select(Student.id).where(Student.email == email))).scalar_one_or_none()
        if student_id is None:
            await db.rollback()
            raise StudentNotFoundError()

    item = await load_item(db, payment.course_id, payment.test_series_id, require_active=False)

    if not await is_enrolled(db, student_id, item):
        await grant_enrollment(
            db,
            student_id,
            item,
            source=EnrollmentSource.UPI,
            receipt_number=utr_number,
            amount=amount,
        )

    await db.commit()
    await db.refresh(payment)

    logger.log_payment_event("UPI", "approved", student_id, amount, utr_number, approved_by=admin.id)
    return {"success": True, "message": "Payment approved", "payment": serialize_payment(payment)}


async def reject(db: AsyncSession, payment_id: str, admin: CurrentAccount) -> Dict[str, Any]:
    payment = await _transition(db, payment_id, {
        "status": UpiPaymentStatus.REJECTED,
        "approved_at": None,
        "approved_by": None,
    })
    await db.commit()
    await db.refresh(payment)

    logger.log_payment_event("UPI", "rejected", payment.student_id, payment.amount, payment.utr_number,
                             rejected_by=admin.id)
    return {"success": True, "message": "Payment rejected", "payment": serialize_payment(payment)}


async def list_for_student(db: AsyncSession, student_id: str) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(UpiPayment).where(UpiPayment.student_id == student_id).order_by(UpiPayment.created_at.desc())
    )
    return [serialize_payment(p) for p in result.scalars().all()]


async def list_pending(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(UpiPayment)
        .where(UpiPayment.status == UpiPaymentStatus.PENDING)
        .order_by(UpiPayment.created_at)
    )
    return [serialize_payment(p) for p in result.scalars().all()]


async def get_receipt(db: AsyncSession, payment_id: str, account: CurrentAccount) -> Dict[str, Any]:
    payment = await db.get(UpiPayment, payment_id)
    if payment is None:
        raise PaymentNotFoundError(payment_id)
    if not account.is_admin and payment.student_id != account.id:
        raise AuthorizationError("Access denied")
    return serialize_payment(payment)
