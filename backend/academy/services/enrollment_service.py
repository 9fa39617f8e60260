"""
Enrollment reconciliation.

Turns a verified payment proof (Razorpay signature, approved UTR, or an
admin decision) into a paid enrollment. The guarantee "at most one paid
enrollment per (student, item)" is held by the partial unique indexes on
the enrollments table; the reads here only pick the friendliest path:

1. a paid row exists        -> AlreadyEnrolledError
2. a pending row exists     -> promote it with UPDATE ... WHERE status='pending'
3. otherwise                -> INSERT a paid row

An IntegrityError from either write means a concurrent request won the
race. It is reported as AlreadyEnrolledError, or as PaymentAlreadyUsedError
when the Razorpay payment id already backs another enrollment. Nothing here
commits; callers commit once after writing any companion ledger rows.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.exceptions import (
    AlreadyEnrolledError,
    PaymentAlreadyUsedError,
    CourseNotFoundError,
    EnrollmentRequiredError,
    TestSeriesNotFoundError,
    ValidationError,
)
from academy.core.logging_config import logger
from academy.models.catalog import Course, TestSeries
from academy.models.enrollment import Enrollment, PaymentStatus, EnrollmentSource

COURSE = "course"
TEST_SERIES = "test_series"


@dataclass(frozen=True)
class CatalogItem:
    """A purchasable catalog entry, detached from the session"""
    kind: str
    id: str
    title: str
    price: int
    is_active: bool

    @property
    def is_course(self) -> bool:
        return self.kind == COURSE

    @property
    def label(self) -> str:
        return "course" if self.is_course else "test series"

    def already_owned_message(self) -> str:
        if self.is_course:
            return "You are already enrolled in this course"
        return "You have already purchased this test series"

    def summary(self) -> dict:
        return {"id": self.id, "title": self.title, "price": self.price, "type": self.kind}


async def load_item(
    db: AsyncSession,
    course_id: Optional[str] = None,
    test_series_id: Optional[str] = None,
    require_active: bool = True,
) -> CatalogItem:
    """Look up a course or test series; inactive items count as missing when require_active"""
    if course_id and test_series_id:
        raise ValidationError("Provide either courseId or testSeriesId, not both")

    if course_id:
        course = await db.get(Course, course_id)
        if course is None or (require_active and not course.is_active):
            raise CourseNotFoundError(course_id)
        return CatalogItem(COURSE, course.id, course.title, course.price, course.is_active)

    if test_series_id:
        series = await db.get(TestSeries, test_series_id)
        if series is None or (require_active and not series.is_active):
            raise TestSeriesNotFoundError(test_series_id)
        return CatalogItem(TEST_SERIES, series.id, series.title, series.price, series.is_active)

    raise ValidationError("Item ID is required")


def _item_clause(item: CatalogItem):
    if item.is_course:
        return Enrollment.course_id == item.id
    return Enrollment.test_series_id == item.id


async def find_enrollment(
    db: AsyncSession, student_id: str, item: CatalogItem, status: PaymentStatus
) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment)
        .where(
            Enrollment.student_id == student_id,
            _item_clause(item),
            Enrollment.payment_status == status,
        )
        .order_by(Enrollment.enrolled_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def is_enrolled(db: AsyncSession, student_id: str, item: CatalogItem) -> bool:
    """Paid access only; pending rows never grant content"""
    return await find_enrollment(db, student_id, item, PaymentStatus.PAID) is not None


async def ensure_not_enrolled(
    db: AsyncSession, student_id: str, item: CatalogItem, message: Optional[str] = None
) -> None:
    if await is_enrolled(db, student_id, item):
        raise AlreadyEnrolledError(message or item.already_owned_message())


async def payment_reference_used(db: AsyncSession, razorpay_payment_id: Optional[str]) -> bool:
    if not razorpay_payment_id:
        return False
    result = await db.execute(
        select(Enrollment.id).where(Enrollment.razorpay_payment_id == razorpay_payment_id).limit(1)
    )
    return result.first() is not None


async def has_course_access(db: AsyncSession, student_id: str, course_id: str) -> bool:
    result = await db.execute(
        select(func.count(Enrollment.id)).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.payment_status == PaymentStatus.PAID,
        )
    )
    return result.scalar_one() > 0


async def add_pending_enrollment(
    db: AsyncSession,
    student_id: str,
    item: CatalogItem,
    source: EnrollmentSource = EnrollmentSource.PUBLIC_UPI,
) -> Optional[Enrollment]:
    """Record purchase intent; a no-op when a pending or paid row already exists"""
    existing = await db.execute(
        select(Enrollment.id).where(Enrollment.student_id == student_id, _item_clause(item)).limit(1)
    )
    if existing.first() is not None:
        return None

    enrollment = Enrollment(
        student_id=student_id,
        course_id=item.id if item.is_course else None,
        test_series_id=None if item.is_course else item.id,
        payment_status=PaymentStatus.PENDING,
        source=source,
        amount=item.price,
    )
    db.add(enrollment)
    await db.flush()
    return enrollment


async def grant_enrollment(
    db: AsyncSession,
    student_id: str,
    item: CatalogItem,
    *,
    source: EnrollmentSource,
    receipt_number: str,
    amount: Optional[int] = None,
    razorpay_order_id: Optional[str] = None,
    razorpay_payment_id: Optional[str] = None,
    already_enrolled_message: Optional[str] = None,
) -> Enrollment:
    """Make (student, item) paid exactly once. Does not commit."""
    message = already_enrolled_message or item.already_owned_message()
    await ensure_not_enrolled(db, student_id, item, message)
    if await payment_reference_used(db, razorpay_payment_id):
        logger.warning(f"[Enrollment] Razorpay payment {razorpay_payment_id} replayed by student {student_id}")
        raise PaymentAlreadyUsedError()

    values = dict(
        payment_status=PaymentStatus.PAID,
        source=source,
        receipt_number=receipt_number,
        amount=item.price if amount is None else amount,
        razorpay_order_id=razorpay_order_id,
        razorpay_payment_id=razorpay_payment_id,
        enrolled_at=datetime.utcnow(),
    )

    try:
        pending = await find_enrollment(db, student_id, item, PaymentStatus.PENDING)
        if pending is not None:
            result = await db.execute(
                update(Enrollment)
                .where(Enrollment.id == pending.id, Enrollment.payment_status == PaymentStatus.PENDING)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                await db.refresh(pending)
                logger.info(
                    f"[Enrollment] Promoted pending {item.label} enrollment {pending.id} for student {student_id}"
                )
                return pending

        enrollment = Enrollment(
            student_id=student_id,
            course_id=item.id if item.is_course else None,
            test_series_id=None if item.is_course else item.id,
            **values,
        )
        db.add(enrollment)
        await db.flush()
    except IntegrityError:
        await db.rollback()
        if await payment_reference_used(db, razorpay_payment_id):
            logger.warning(f"[Enrollment] Razorpay payment {razorpay_payment_id} was claimed concurrently")
            raise PaymentAlreadyUsedError()
        logger.warning(
            f"[Enrollment] Concurrent grant detected for student {student_id} on {item.label} {item.id}"
        )
        raise AlreadyEnrolledError(message)

    logger.info(f"[Enrollment] Granted {item.label} {item.id} to student {student_id} via {source.value}")
    return enrollment


async def list_enrollments(db: AsyncSession, student_id: str, kind: str = COURSE) -> List[Enrollment]:
    column = Enrollment.course_id if kind == COURSE else Enrollment.test_series_id
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.student_id == student_id, column.is_not(None))
        .order_by(Enrollment.enrolled_at.desc())
    )
    return list(result.scalars().all())


async def remove_course_access(db: AsyncSession, student_id: str, course_id: str) -> int:
    """Delete every enrollment row (pending or paid) the student has for the course"""
    result = await db.execute(
        delete(Enrollment)
        .where(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def ensure_course_access(db: AsyncSession, account, course_id: str, message: Optional[str] = None) -> None:
    """Admins always pass; students need a paid enrollment in the course"""
    if account.is_admin:
        return
    if not await has_course_access(db, account.id, course_id):
        raise EnrollmentRequiredError(message) if message else EnrollmentRequiredError()
