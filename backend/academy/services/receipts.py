import secrets
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import select, exists, or_
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.exceptions import ConflictError
from academy.models.enrollment import Enrollment
from academy.models.ledger import LegacyUser

COURSE_RECEIPT_PREFIX = "SDN"
TEST_SERIES_RECEIPT_PREFIX = "TSN"
ADMIN_COURSE_RECEIPT_PREFIX = "ADM"
ADMIN_TEST_SERIES_RECEIPT_PREFIX = "TSADM"

MAX_RECEIPT_ATTEMPTS = 5


def generate_receipt_number(prefix: str = COURSE_RECEIPT_PREFIX, now: Optional[datetime] = None) -> str:
    """PREFIX + YYYYMM + 4 random digits, e.g. SDN2024071234"""
    now = now or datetime.now()
    return f"{prefix}{now:%Y%m}{1000 + secrets.randbelow(9000)}"


def generate_admin_receipt_number(prefix: str = ADMIN_COURSE_RECEIPT_PREFIX) -> str:
    """PREFIX + epoch milliseconds"""
    return f"{prefix}{int(time.time() * 1000)}"


async def receipt_number_taken(db: AsyncSession, receipt_number: str) -> bool:
    stmt = select(
        or_(
            exists().where(LegacyUser.receipt_number == receipt_number),
            exists().where(Enrollment.receipt_number == receipt_number),
        )
    )
    return bool((await db.execute(stmt)).scalar())


async def issue_receipt_number(db: AsyncSession, prefix: str = COURSE_RECEIPT_PREFIX) -> str:
    """Random receipt number not yet present in the ledger or on any enrollment"""
    for _ in range(MAX_RECEIPT_ATTEMPTS):
        candidate = generate_receipt_number(prefix)
        if not await receipt_number_taken(db, candidate):
            return candidate
    raise ConflictError("Could not allocate a receipt number, please retry", code="RECEIPT_EXHAUSTED")
