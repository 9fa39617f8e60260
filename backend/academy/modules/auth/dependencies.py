from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.exceptions import AuthenticationError, AuthorizationError
from academy.core.logging_config import set_user_id
from academy.core.security import decode_token, security
from academy.models.account import Student, Admin

STUDENT = "student"
ADMIN = "admin"


@dataclass
class CurrentAccount:
    """The authenticated caller: a student or an admin"""
    id: str
    user_type: str
    student: Optional[Student] = None
    admin: Optional[Admin] = None

    @property
    def is_admin(self) -> bool:
        return self.user_type == ADMIN

    @property
    def email(self) -> str:
        account = self.admin if self.is_admin else self.student
        return account.email


async def get_current_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> CurrentAccount:
    """Resolve the Bearer token to a live student or admin account"""
    if credentials is None:
        raise AuthenticationError("Access denied. No token provided.")

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    account_id = payload.get("sub")
    user_type = payload.get("user_type")
    if not account_id or user_type not in (STUDENT, ADMIN):
        raise AuthenticationError("Invalid token payload")

    if user_type == ADMIN:
        admin = (await db.execute(select(Admin).where(Admin.id == account_id))).scalar_one_or_none()
        if not admin:
            raise AuthenticationError("Invalid token. User not found.")
        account = CurrentAccount(id=admin.id, user_type=ADMIN, admin=admin)
    else:
        student = (await db.execute(select(Student).where(Student.id == account_id))).scalar_one_or_none()
        if not student:
            raise AuthenticationError("Invalid token. User not found.")
        if not student.is_active:
            raise AuthorizationError("Account is deactivated")
        account = CurrentAccount(id=student.id, user_type=STUDENT, student=student)

    request.state.account_id = account.id
    set_user_id(account.id)
    return account


async def require_student(
    account: CurrentAccount = Depends(get_current_account)
) -> CurrentAccount:
    """Student-area access; admins are let through as well"""
    return account


async def require_admin(
    account: CurrentAccount = Depends(get_current_account)
) -> CurrentAccount:
    if not account.is_admin:
        raise AuthorizationError("Admin access required")
    return account


async def require_student_account(
    account: CurrentAccount = Depends(get_current_account)
) -> Student:
    """Endpoints that act on the caller's own enrollments need a real student row"""
    if account.student is None:
        raise AuthorizationError("Student access required")
    return account.student
