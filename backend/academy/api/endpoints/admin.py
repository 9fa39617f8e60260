"""
Admin back office: dashboard, students, catalog overviews, payment history
and manual enrollment management.
"""

import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.exceptions import (
    AuthorizationError, CourseNotFoundError, ResourceNotFoundError, StudentNotFoundError, ValidationError,
)
from academy.core.logging_config import logger
from academy.core.security import get_password_hash
from academy.models.account import Admin, Student
from academy.models.catalog import Course, Video
from academy.models.enrollment import Enrollment, EnrollmentSource, PaymentStatus
from academy.models.ledger import LegacyUser
from academy.modules.auth.dependencies import CurrentAccount, require_admin
from academy.schemas.auth import AdminCreate, StudentResponse, StudentUpdate
from academy.schemas.catalog import CourseResponse, VideoResponse
from academy.schemas.payment import AdminEnrollRequest, EnrollmentResponse, RemoveAccessRequest
from academy.services.enrollment_service import (
    CatalogItem, grant_enrollment, list_enrollments, load_item, remove_course_access, COURSE, TEST_SERIES,
)
from academy.services.receipts import (
    ADMIN_COURSE_RECEIPT_PREFIX, ADMIN_TEST_SERIES_RECEIPT_PREFIX, generate_admin_receipt_number,
)

router = APIRouter()


def _pagination(total: int, page: int, limit: int) -> dict:
    return {"totalPages": math.ceil(total / limit), "currentPage": page, "totalRecords": total}


def _student(student: Student) -> dict:
    return StudentResponse.model_validate(student).model_dump(by_alias=True, mode="json")


def _enrollment(enrollment: Enrollment) -> dict:
    return EnrollmentResponse.model_validate(enrollment).model_dump(by_alias=True, mode="json")


async def _find_student(db: AsyncSession, request: AdminEnrollRequest) -> Student:
    if request.student_id:
        student = await db.get(Student, request.student_id)
    else:
        clauses = []
        if request.email:
            clauses.append(Student.email == request.email.strip().lower())
        if request.mobile:
            clauses.append(Student.mobile == request.mobile)
        student = (await db.execute(select(Student).where(or_(*clauses)).limit(1))).scalar_one_or_none()
    if student is None:
        raise StudentNotFoundError(request.student_id)
    return student


async def _manual_enroll(db: AsyncSession, admin: CurrentAccount, request: AdminEnrollRequest,
                         item: CatalogItem) -> dict:
    student = await _find_student(db, request)
    student_id = student.id
    prefix = ADMIN_COURSE_RECEIPT_PREFIX if item.is_course else ADMIN_TEST_SERIES_RECEIPT_PREFIX
    message = "Student already enrolled" if item.is_course else "Student already enrolled in this test series"

    await grant_enrollment(
        db,
        student_id,
        item,
        source=EnrollmentSource.ADMIN,
        receipt_number=generate_admin_receipt_number(prefix),
        amount=request.amount if request.amount is not None else item.price,
        already_enrolled_message=message,
    )
    await db.commit()

    logger.info(f"[Admin] {admin.id} enrolled student {student_id} in {item.label} {item.id}")
    return {
        "success": True,
        "message": "Student enrolled" if item.is_course else "Student enrolled to test series",
        "studentId": student_id,
    }


async def _remove_access(db: AsyncSession, admin: CurrentAccount, course_id: str, student_id: str) -> dict:
    if await db.get(Student, student_id) is None:
        raise StudentNotFoundError(student_id)
    removed = await remove_course_access(db, student_id, course_id)
    if removed == 0:
        raise ResourceNotFoundError("Enrollment")
    await db.commit()
    logger.info(f"[Admin] {admin.id} removed course {course_id} from student {student_id}")
    return {"success": True, "message": "Access removed"}


# ========== Dashboard ==========

@router.get("/dashboard")
async def get_dashboard(
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    total_students = await db.scalar(select(func.count(Student.id)).where(Student.is_active.is_(True)))
    total_courses = await db.scalar(select(func.count(Course.id)).where(Course.is_active.is_(True)))
    total_videos = await db.scalar(select(func.count(Video.id)).where(Video.is_active.is_(True)))
    paid_ledger = (await db.execute(
        select(func.count(LegacyUser.id), func.coalesce(func.sum(LegacyUser.amount), 0))
        .where(LegacyUser.payment_status == "paid")
    )).one()

    enrollment_count = func.count(Enrollment.id)
    course_rows = (await db.execute(
        select(Course.id, Course.title, Course.price, enrollment_count)
        .outerjoin(Enrollment, and_(
            Enrollment.course_id == Course.id,
            Enrollment.payment_status == PaymentStatus.PAID,
        ))
        .where(Course.is_active.is_(True))
        .group_by(Course.id, Course.title, Course.price)
        .order_by(enrollment_count.desc())
    )).all()

    recent = (await db.execute(
        select(Enrollment, Student.name, Student.email)
        .join(Student, Student.id == Enrollment.student_id)
        .where(Enrollment.payment_status == PaymentStatus.PAID)
        .order_by(Enrollment.enrolled_at.desc())
        .limit(10)
    )).all()

    return {
        "success": True,
        "stats": {
            "totalStudents": total_students,
            "totalCourses": total_courses,
            "totalVideos": total_videos,
            "totalPayments": paid_ledger[0],
            "totalRevenue": paid_ledger[1],
        },
        "recentEnrollments": [
            {
                "studentName": name,
                "studentEmail": email,
                "item": e.course.title if e.course else (e.test_series.title if e.test_series else None),
                "source": e.source.value,
                "enrolledAt": e.enrolled_at,
            }
            for e, name, email in recent
        ],
        "courseStats": [
            {"id": cid, "title": title, "price": price, "enrollmentCount": count, "totalRevenue": count * price}
            for cid, title, price, count in course_rows
        ],
    }


@router.get("/features")
async def get_features(admin: CurrentAccount = Depends(require_admin)):
    """Back-office sections for the admin UI, with the routes each one uses"""
    return {
        "success": True,
        "features": [
            {
                "key": "manage_courses",
                "title": "Manage Courses",
                "path": "/admin/courses",
                "api": [
                    {"method": "GET", "route": "/api/admin/courses"},
                    {"method": "POST", "route": "/api/courses"},
                    {"method": "PUT", "route": "/api/courses/:id"},
                    {"method": "DELETE", "route": "/api/courses/:id"},
                ],
            },
            {
                "key": "manage_videos",
                "title": "Manage Videos",
                "path": "/admin/courses",
                "api": [
                    {"method": "GET", "route": "/api/admin/courses/:courseId/videos"},
                    {"method": "POST", "route": "/api/courses/:id/videos"},
                    {"method": "PUT", "route": "/api/courses/:courseId/videos/:videoId"},
                    {"method": "DELETE", "route": "/api/courses/:courseId/videos/:videoId"},
                ],
            },
            {
                "key": "manage_documents",
                "title": "Course Documents",
                "path": "/admin/courses",
                "api": [
                    {"method": "POST", "route": "/api/documents/courses/:courseId"},
                    {"method": "GET", "route": "/api/documents/courses/:courseId"},
                    {"method": "PUT", "route": "/api/documents/:documentId"},
                    {"method": "DELETE", "route": "/api/documents/:documentId"},
                ],
            },
            {
                "key": "upi_approvals",
                "title": "UPI Approvals",
                "path": "/admin/approvals",
                "api": [
                    {"method": "GET", "route": "/api/upi-payments/pending"},
                    {"method": "POST", "route": "/api/upi-payments/:id/approve"},
                    {"method": "POST", "route": "/api/upi-payments/:id/reject"},
                ],
            },
            {
                "key": "test_series",
                "title": "Test Series",
                "path": "/admin/test-series",
                "api": [
                    {"method": "GET", "route": "/api/test-series/admin/all"},
                    {"method": "POST", "route": "/api/test-series"},
                    {"method": "PUT", "route": "/api/test-series/:id"},
                    {"method": "DELETE", "route": "/api/test-series/:id"},
                ],
            },
            {
                "key": "homepage_ads",
                "title": "Homepage Ads",
                "path": "/admin",
                "api": [
                    {"method": "POST", "route": "/api/admin/homepage-ads"},
                    {"method": "GET", "route": "/api/admin/homepage-ads"},
                    {"method": "GET", "route": "/api/admin/homepage-ads/public/active"},
                ],
            },
        ],
    }


@router.post("/create-admin", status_code=status.HTTP_201_CREATED)
async def create_first_admin(payload: AdminCreate, db: AsyncSession = Depends(get_db)):
    """Bootstrap the first admin account; refused once any admin exists"""
    if (await db.execute(select(Admin.id).limit(1))).first() is not None:
        raise AuthorizationError("Admin account already exists. Use login endpoint.")

    db.add(Admin(
        name=payload.name,
        email=payload.email.strip().lower(),
        password_hash=get_password_hash(payload.password),
        role="super_admin",
    ))
    await db.commit()
    logger.log_auth_event("create_admin", success=True, user_email=payload.email)
    return {"success": True, "message": "Admin account created successfully"}


# ========== Students ==========

@router.get("/students")
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    conditions = [Student.is_active.is_(True)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            Student.name.ilike(pattern), Student.email.ilike(pattern), Student.mobile.ilike(pattern)
        ))

    total = await db.scalar(select(func.count(Student.id)).where(*conditions))
    result = await db.execute(
        select(Student).where(*conditions)
        .order_by(Student.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "students": [_student(s) for s in result.scalars().all()],
        "pagination": _pagination(total, page, limit),
    }


@router.get("/students/{student_id}")
async def get_student(
    student_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    student = await db.get(Student, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)
    return {
        "success": True,
        "student": {
            **_student(student),
            "enrolledCourses": [_enrollment(e) for e in await list_enrollments(db, student_id, COURSE)],
            "purchasedTestSeries": [_enrollment(e) for e in await list_enrollments(db, student_id, TEST_SERIES)],
        },
    }


@router.put("/students/{student_id}")
async def update_student(
    student_id: str,
    payload: StudentUpdate,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    student = await db.get(Student, student_id)
    if student is None:
        raise StudentNotFoundError(student_id)

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(student, field, value)
    await db.commit()
    await db.refresh(student)
    return {"success": True, "message": "Student updated successfully", "student": _student(student)}


# ========== Courses & videos ==========

@router.get("/courses")
async def list_courses_with_video_counts(
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    video_count = (
        select(func.count(Video.id))
        .where(Video.course_id == Course.id, Video.is_active.is_(True))
        .correlate(Course)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Course, video_count).where(Course.is_active.is_(True)).order_by(Course.created_at.desc())
    )
    return {
        "success": True,
        "courses": [
            {**CourseResponse.model_validate(c).model_dump(by_alias=True, mode="json"), "videoCount": count}
            for c, count in result.all()
        ],
    }


@router.get("/videos")
async def list_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    course_id: Optional[str] = Query(None, alias="courseId"),
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    conditions = [Video.is_active.is_(True)]
    if course_id:
        conditions.append(Video.course_id == course_id)

    total = await db.scalar(select(func.count(Video.id)).where(*conditions))
    result = await db.execute(
        select(Video, Course.title)
        .join(Course, Course.id == Video.course_id)
        .where(*conditions)
        .order_by(Video.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "videos": [
            {**VideoResponse.model_validate(v).model_dump(by_alias=True, mode="json"), "courseTitle": title}
            for v, title in result.all()
        ],
        "pagination": _pagination(total, page, limit),
    }


@router.get("/courses/{course_id}/videos")
async def list_course_videos(
    course_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)

    result = await db.execute(
        select(Video)
        .where(Video.course_id == course_id, Video.is_active.is_(True))
        .order_by(Video.order, Video.created_at)
    )
    return {
        "success": True,
        "videos": [VideoResponse.model_validate(v).model_dump(by_alias=True, mode="json") for v in result.scalars()],
        "course": {"id": course.id, "title": course.title, "description": course.description},
    }


@router.get("/courses/{course_id}/enrollment-count")
async def get_enrollment_count(
    course_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    count = await db.scalar(
        select(func.count(Enrollment.id))
        .join(Student, Student.id == Enrollment.student_id)
        .where(
            Enrollment.course_id == course_id,
            Enrollment.payment_status == PaymentStatus.PAID,
            Student.is_active.is_(True),
        )
    )
    return {"success": True, "enrollmentCount": count}


@router.get("/courses/{course_id}/students")
async def list_course_students(
    course_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    conditions = [
        Enrollment.course_id == course_id,
        Enrollment.payment_status == PaymentStatus.PAID,
        Student.is_active.is_(True),
    ]
    total = await db.scalar(
        select(func.count(Enrollment.id)).join(Student, Student.id == Enrollment.student_id).where(*conditions)
    )
    result = await db.execute(
        select(Student, Enrollment)
        .join(Enrollment, Enrollment.student_id == Student.id)
        .where(*conditions)
        .order_by(Enrollment.enrolled_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "students": [
            {
                "id": s.id,
                "name": s.name,
                "email": s.email,
                "mobile": s.mobile,
                "enrolledAt": e.enrolled_at,
                "receiptNumber": e.receipt_number,
                "amount": e.amount,
                "source": e.source.value,
            }
            for s, e in result.all()
        ],
        "pagination": _pagination(total, page, limit),
    }


# ========== Payments ==========

@router.get("/payments")
async def get_payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    course_id: Optional[str] = Query(None, alias="course"),
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Paid enrollments (every rail) merged with legacy ledger rows, newest first"""
    enrollment_conditions = [Enrollment.payment_status == PaymentStatus.PAID, Enrollment.course_id.is_not(None)]
    ledger_conditions = [LegacyUser.payment_status == "paid"]
    if course_id:
        enrollment_conditions.append(Enrollment.course_id == course_id)
        course = await db.get(Course, course_id)
        if course is not None:
            ledger_conditions.append(LegacyUser.course == course.title)

    offset = (page - 1) * limit
    enrollments = (await db.execute(
        select(Enrollment, Student)
        .join(Student, Student.id == Enrollment.student_id)
        .where(*enrollment_conditions)
        .order_by(Enrollment.enrolled_at.desc())
        .offset(offset)
        .limit(limit)
    )).all()
    ledger = (await db.execute(
        select(LegacyUser).where(*ledger_conditions)
        .order_by(LegacyUser.payment_date.desc())
        .offset(offset)
        .limit(limit)
    )).scalars().all()

    payments = [
        {
            "id": f"{s.id}_{e.course_id}",
            "name": s.name,
            "email": s.email,
            "mobile": s.mobile,
            "course": e.course.title if e.course else None,
            "amount": e.amount,
            "receiptNumber": e.receipt_number,
            "paymentDate": e.enrolled_at,
            "paymentStatus": "paid",
            "source": "student",
            "rail": e.source.value,
        }
        for e, s in enrollments
    ] + [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "mobile": row.mobile,
            "course": row.course,
            "amount": row.amount,
            "receiptNumber": row.receipt_number,
            "paymentDate": row.payment_date,
            "paymentStatus": row.payment_status,
            "razorpayPaymentId": row.razorpay_payment_id,
            "source": "legacy",
        }
        for row in ledger
    ]
    payments.sort(key=lambda p: p["paymentDate"] or datetime.min, reverse=True)

    total = (
        await db.scalar(
            select(func.count(Enrollment.id)).join(Student, Student.id == Enrollment.student_id)
            .where(*enrollment_conditions)
        )
        + await db.scalar(select(func.count(LegacyUser.id)).where(*ledger_conditions))
    )
    return {"success": True, "payments": payments, "pagination": _pagination(total, page, limit)}


# ========== Manual enrollment ==========

@router.post("/courses/{course_id}/students")
async def enroll_student_in_course(
    course_id: str,
    payload: AdminEnrollRequest,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    item = await load_item(db, course_id=course_id, require_active=False)
    return await _manual_enroll(db, admin, payload, item)


@router.delete("/courses/{course_id}/students/{student_id}")
async def remove_student_from_course(
    course_id: str,
    student_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await _remove_access(db, admin, course_id, student_id)


@router.post("/add-student-to-course")
async def add_student_to_course(
    payload: AdminEnrollRequest,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if not payload.course_id:
        raise ValidationError("courseId is required", field="courseId")
    item = await load_item(db, course_id=payload.course_id, require_active=False)
    return await _manual_enroll(db, admin, payload, item)


@router.post("/add-student-to-test-series")
async def add_student_to_test_series(
    payload: AdminEnrollRequest,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if not payload.test_series_id:
        raise ValidationError("testSeriesId is required", field="testSeriesId")
    item = await load_item(db, test_series_id=payload.test_series_id, require_active=False)
    return await _manual_enroll(db, admin, payload, item)


@router.post("/remove-student-from-course")
async def remove_student_from_course_by_body(
    payload: RemoveAccessRequest,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await _remove_access(db, admin, payload.course_id, payload.student_id)
