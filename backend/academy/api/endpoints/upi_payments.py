"""
Manual UPI payments: payment links, UTR submission and admin verification.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.rate_limiter import limiter
from academy.models.account import Student
from academy.modules.auth.dependencies import (
    CurrentAccount, get_current_account, require_admin, require_student_account,
)
from academy.schemas.payment import PublicUpiInitiateRequest, SubmitUtrRequest, UpiInitiateRequest
from academy.services import upi_service

router = APIRouter()


@router.post("/initiate")
async def initiate_upi_payment(
    payload: UpiInitiateRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    return await upi_service.initiate(db, student, payload)


@router.post("/initiate-public")
@limiter.limit("3/minute")
async def initiate_public_upi_payment(
    request: Request,
    payload: PublicUpiInitiateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Anonymous checkout; pre-registers the buyer by email (rate limited: 3/min)"""
    return await upi_service.initiate_public(db, payload)


@router.post("/submit-utr", status_code=status.HTTP_201_CREATED)
async def submit_utr(
    payload: SubmitUtrRequest,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    return await upi_service.submit_utr(db, student, payload)


@router.get("/my")
async def get_my_upi_payments(
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    return {"success": True, "payments": await upi_service.list_for_student(db, student.id)}


@router.get("/pending")
async def get_pending_upi_payments(
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    payments = await upi_service.list_pending(db)
    return {"success": True, "count": len(payments), "payments": payments}


@router.post("/{payment_id}/approve")
async def approve_upi_payment(
    payment_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await upi_service.approve(db, payment_id, admin)


@router.post("/{payment_id}/reject")
async def reject_upi_payment(
    payment_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await upi_service.reject(db, payment_id, admin)


@router.get("/{payment_id}")
async def get_upi_receipt(
    payment_id: str,
    account: CurrentAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """Receipt for the submitting student, or any admin"""
    return {"success": True, "payment": await upi_service.get_receipt(db, payment_id, account)}
