from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, Index
from datetime import datetime

from academy.core.database import Base, generate_uuid


class HomepageAd(Base):
    """Promotional banner shown on the public homepage"""
    __tablename__ = "homepage_ads"
    __table_args__ = (
        Index("ix_homepage_ads_active_order", "is_active", "order"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    image_url = Column(Text, nullable=False)
    redirect_url = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    created_by = Column(String(36), ForeignKey("admins.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Otp(Base):
    """One-time code for a mobile number; valid for OTP_TTL_SECONDS after created_at"""
    __tablename__ = "otps"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mobile = Column(String(20), nullable=False, index=True)
    code = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
