from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from academy.schemas.base import CamelModel


class StudentRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    mobile: str = Field(..., pattern=r'^\d{10}$', description="10-digit mobile number")
    password: str = Field(..., min_length=6)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class AdminCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class OtpSendRequest(BaseModel):
    mobile: str = Field(..., pattern=r'^\d{10}$')


class OtpVerifyRequest(BaseModel):
    mobile: str = Field(..., pattern=r'^\d{10}$')
    otp: str = Field(..., min_length=4, max_length=10)


class StudentResponse(CamelModel):
    id: str
    name: str
    email: str
    mobile: str
    is_active: bool
    mailed_credentials: bool = False
    enrollment_mail_sent: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime


class AdminResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str


class StudentUpdate(CamelModel):
    """Back-office flags an admin may flip on a student"""
    is_active: Optional[bool] = None
    mailed_credentials: Optional[bool] = None
    enrollment_mail_sent: Optional[bool] = None

