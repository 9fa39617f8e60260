from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from academy.core.config import settings
from academy.core.database import get_db
from academy.core.exceptions import ConflictError, InvalidCredentialsError
from academy.core.logging_config import logger, set_user_id
from academy.core.rate_limiter import limiter
from academy.core.security import create_access_token, get_password_hash, verify_password
from academy.models.account import Student, Admin
from academy.modules.auth.dependencies import CurrentAccount, get_current_account, STUDENT, ADMIN
from academy.schemas.auth import (
    StudentRegister, LoginRequest, OtpSendRequest, OtpVerifyRequest, StudentResponse, AdminResponse,
)
from academy.services import otp_service
from academy.services.enrollment_service import COURSE, TEST_SERIES, list_enrollments

router = APIRouter()


def _student_summary(student: Student) -> dict:
    return {"id": student.id, "name": student.name, "email": student.email, "mobile": student.mobile}


@router.post("/student/register", status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register_student(
    request: Request,
    payload: StudentRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a student account (rate limited: 3/min)"""
    existing = await db.execute(
        select(Student.id).where(or_(Student.email == payload.email, Student.mobile == payload.mobile))
    )
    if existing.first() is not None:
        logger.log_auth_event("register", success=False, user_email=payload.email, reason="Already exists")
        raise ConflictError("Student with this email or mobile already exists", code="STUDENT_EXISTS")

    student = Student(
        name=payload.name,
        email=payload.email,
        mobile=payload.mobile,
        password_hash=get_password_hash(payload.password),
    )
    db.add(student)
    await db.commit()

    logger.log_auth_event("register", success=True, user_email=student.email)

    return {
        "success": True,
        "message": "Student registered successfully",
        "token": create_access_token(student.id, STUDENT),
        "student": _student_summary(student),
    }


@router.post("/student/login")
@limiter.limit("5/minute")
async def login_student(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Student login (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    result = await db.execute(
        select(Student).where(Student.email == credentials.email, Student.is_active.is_(True))
    )
    student = result.scalar_one_or_none()

    if not student or not verify_password(credentials.password, student.password_hash):
        logger.log_auth_event(
            event="student_login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise InvalidCredentialsError()

    student.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(student.id)
    logger.log_auth_event(event="student_login", success=True, user_email=student.email, client_ip=client_ip)

    courses = await list_enrollments(db, student.id, COURSE)
    return {
        "success": True,
        "message": "Login successful",
        "token": create_access_token(student.id, STUDENT),
        "student": {
            **_student_summary(student),
            "enrolledCourses": [
                {"course": e.course_id, "paymentStatus": e.payment_status.value, "enrolledAt": e.enrolled_at}
                for e in courses
            ],
        },
    }


@router.post("/admin/login")
@limiter.limit("5/minute")
async def login_admin(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Admin login (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    admin = (await db.execute(select(Admin).where(Admin.email == credentials.email))).scalar_one_or_none()

    if not admin or not verify_password(credentials.password, admin.password_hash):
        logger.log_auth_event(
            event="admin_login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise InvalidCredentialsError()

    admin.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(admin.id)
    logger.log_auth_event(event="admin_login", success=True, user_email=admin.email, client_ip=client_ip)

    return {
        "success": True,
        "message": "Login successful",
        "token": create_access_token(admin.id, ADMIN),
        "admin": AdminResponse.model_validate(admin).model_dump(by_alias=True),
    }


@router.get("/profile")
async def get_profile(
    account: CurrentAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    if account.is_admin:
        return {
            "success": True,
            "user": AdminResponse.model_validate(account.admin).model_dump(by_alias=True),
            "userType": ADMIN,
        }

    user = StudentResponse.model_validate(account.student).model_dump(by_alias=True, mode="json")
    user["enrolledCourses"] = [
        {
            "course": e.course.title if e.course else None,
            "courseId": e.course_id,
            "paymentStatus": e.payment_status.value,
            "receiptNumber": e.receipt_number,
            "enrolledAt": e.enrolled_at,
        }
        for e in await list_enrollments(db, account.id, COURSE)
    ]
    user["purchasedTestSeries"] = [
        {
            "testSeriesId": e.test_series_id,
            "paymentStatus": e.payment_status.value,
            "receiptNumber": e.receipt_number,
            "purchasedAt": e.enrolled_at,
        }
        for e in await list_enrollments(db, account.id, TEST_SERIES)
    ]
    user["watchedProgress"] = account.student.watched_progress or {}
    return {"success": True, "user": user, "userType": STUDENT}


@router.post("/logout")
async def logout(account: CurrentAccount = Depends(get_current_account)):
    """Tokens are stateless; the client discards its copy"""
    logger.log_auth_event(event="logout", success=True, user_email=account.email)
    return {"success": True, "message": "Logged out successfully"}


@router.post("/otp/send")
@limiter.limit("3/minute")
async def send_otp(
    request: Request,
    payload: OtpSendRequest,
    db: AsyncSession = Depends(get_db)
):
    code = await otp_service.send_otp(db, payload.mobile)
    response = {"success": True, "message": "OTP sent successfully"}
    if settings.is_dev_mode():
        response["otp"] = code
    return response


@router.post("/otp/verify")
@limiter.limit("5/minute")
async def verify_otp(
    request: Request,
    payload: OtpVerifyRequest,
    db: AsyncSession = Depends(get_db)
):
    await otp_service.verify_otp(db, payload.mobile, payload.otp)
    return {"success": True, "message": "OTP verified successfully"}
