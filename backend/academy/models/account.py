from sqlalchemy import Column, String, Boolean, DateTime, JSON
from datetime import datetime

from academy.core.database import Base, generate_uuid


class Student(Base):
    """Student account. Never hard-deleted; deactivated through is_active."""
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    mobile = Column(String(20), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Issued by the public UPI flow before any payment exists
    temp_password = Column(String(64), nullable=True)
    mailed_credentials = Column(Boolean, default=False, nullable=False)
    enrollment_mail_sent = Column(Boolean, default=False, nullable=False)

    # video_id -> seconds watched
    watched_progress = Column(JSON, default=dict, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Student {self.email}>"


class Admin(Base):
    """Back-office account"""
    __tablename__ = "admins"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), default="admin", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Admin {self.email}>"
