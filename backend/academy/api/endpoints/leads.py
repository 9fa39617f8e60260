"""
Public enquiry form and the per-course Excel export of the legacy ledger.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.exceptions import ConflictError
from academy.core.logging_config import logger
from academy.core.rate_limiter import limiter
from academy.models.ledger import LegacyUser
from academy.modules.auth.dependencies import CurrentAccount, require_admin
from academy.schemas.payment import LeadCreate
from academy.services.report_service import XLSX_MEDIA_TYPE, export_course, export_filename

router = APIRouter()

DUPLICATE_MOBILE_MESSAGE = "This mobile number is already registered."


@router.post("/users", status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def capture_lead(
    request: Request,
    payload: LeadCreate,
    db: AsyncSession = Depends(get_db)
):
    existing = await db.execute(
        select(LegacyUser.id).where(LegacyUser.mobile == payload.mobile, LegacyUser.payment_status.is_(None))
    )
    if existing.first() is not None:
        raise ConflictError(DUPLICATE_MOBILE_MESSAGE, code="DUPLICATE_MOBILE")

    db.add(LegacyUser(name=payload.name, mobile=payload.mobile, email=payload.email, course=payload.course))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MOBILE_MESSAGE, code="DUPLICATE_MOBILE")

    logger.info(f"[Leads] Enquiry captured for course {payload.course!r}")
    return {"success": True, "message": "User saved successfully"}


@router.get("/export/{course}")
async def export_course_users(
    course: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Excel workbook of every ledger row (leads and payments) for a course title"""
    content = await export_course(db, course)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(course)}"'},
    )
