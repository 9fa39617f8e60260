from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.database import get_db
from academy.core.exceptions import ResourceNotFoundError, ValidationError
from academy.models.site import HomepageAd
from academy.modules.auth.dependencies import CurrentAccount, require_admin
from academy.schemas.catalog import HomepageAdResponse, HomepageAdSave

router = APIRouter()

REQUIRED_ON_CREATE = ("title", "image_url", "redirect_url")


def _ad(ad: HomepageAd) -> dict:
    return HomepageAdResponse.model_validate(ad).model_dump(by_alias=True, mode="json")


@router.post("")
async def save_ad(
    payload: HomepageAdSave,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Upsert: update the ad named by id, otherwise create a new one"""
    values = payload.model_dump(exclude={"id"}, exclude_none=True)

    if payload.id:
        ad = await db.get(HomepageAd, payload.id)
        if ad is None:
            raise ResourceNotFoundError("Ad", payload.id)
        for field, value in values.items():
            setattr(ad, field, value)
    else:
        missing = [field for field in REQUIRED_ON_CREATE if not values.get(field)]
        if missing:
            raise ValidationError("Title, image URL and redirect URL are required", field=missing[0])
        ad = HomepageAd(**values, created_by=admin.id)
        db.add(ad)

    await db.commit()
    await db.refresh(ad)
    return {"success": True, "ad": _ad(ad)}


@router.get("")
async def list_ads(
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(HomepageAd).order_by(HomepageAd.order, HomepageAd.created_at.desc()))
    return {"success": True, "ads": [_ad(a) for a in result.scalars().all()]}


@router.get("/public/active")
async def list_active_ads(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(HomepageAd)
        .where(HomepageAd.is_active.is_(True))
        .order_by(HomepageAd.order, HomepageAd.created_at.desc())
    )
    return {"success": True, "ads": [_ad(a) for a in result.scalars().all()]}
