"""
Mobile OTP codes. No SMS provider is wired; delivery is logged.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.config import settings
from academy.core.exceptions import ValidationError
from academy.core.logging_config import logger
from academy.models.site import Otp


def generate_otp_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _expiry_cutoff(now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) - timedelta(seconds=settings.OTP_TTL_SECONDS)


async def purge_expired(db: AsyncSession) -> None:
    await db.execute(delete(Otp).where(Otp.created_at < _expiry_cutoff()))


async def send_otp(db: AsyncSession, mobile: str) -> str:
    """Replace any outstanding code for the number with a fresh one"""
    await purge_expired(db)
    await db.execute(delete(Otp).where(Otp.mobile == mobile))

    code = generate_otp_code()
    db.add(Otp(mobile=mobile, code=code))
    await db.commit()

    logger.info(f"[Auth] OTP issued for mobile ending {mobile[-4:]}")
    return code


async def verify_otp(db: AsyncSession, mobile: str, code: str) -> None:
    await purge_expired(db)

    result = await db.execute(
        select(Otp).where(Otp.mobile == mobile, Otp.code == code, Otp.created_at >= _expiry_cutoff())
    )
    otp = result.scalars().first()
    if otp is None:
        await db.commit()
        logger.log_auth_event("otp_verify", success=False, reason=f"invalid code for ...{mobile[-4:]}")
        raise ValidationError("Invalid or expired OTP", field="otp")

    await db.execute(delete(Otp).where(Otp.mobile == mobile))
    await db.commit()
    logger.log_auth_event("otp_verify", success=True)
