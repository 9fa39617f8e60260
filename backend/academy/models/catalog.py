from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, JSON, ForeignKey, Index, CheckConstraint,
    Enum as SQLEnum,
)
from datetime import datetime
import enum

from academy.core.database import Base, generate_uuid


def enum_values(enum_cls):
    """Store enum values (lowercase strings) rather than member names"""
    return [member.value for member in enum_cls]


class CourseCategory(str, enum.Enum):
    GPSC = "gpsc"
    UPSC = "upsc"
    SSC = "ssc"
    NEET11 = "neet11"
    NEET12 = "neet12"
    TALATI = "talati"
    ETHICS = "ethics"


class TestSeriesCategory(str, enum.Enum):
    GPSC = "gpsc"
    UPSC = "upsc"
    NEET = "neet"
    BANKING = "banking"
    RAILWAY = "railway"
    SSC = "ssc"
    TALATI = "talati"


class Course(Base):
    """Course catalog item; price is in whole rupees"""
    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    category = Column(
        SQLEnum(CourseCategory, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
    )
    duration = Column(String(50), default="12 months", nullable=False)
    thumbnail = Column(Text, default="", nullable=False)
    features = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(String(36), ForeignKey("admins.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Course {self.title}>"


class TestSeries(Base):
    """Test series catalog item"""
    __tablename__ = "test_series"
    __test__ = False
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_test_series_price_non_negative"),
        CheckConstraint("number_of_tests >= 1", name="ck_test_series_min_tests"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    category = Column(
        SQLEnum(TestSeriesCategory, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
    )
    duration = Column(String(50), default="3 months", nullable=False)
    number_of_tests = Column(Integer, nullable=False)
    features = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(String(36), ForeignKey("admins.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<TestSeries {self.title}>"


class Video(Base):
    """Course video hosted on Cloudinary"""
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_course_order", "course_id", "order"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    video_url = Column(Text, nullable=False)
    public_id = Column(String(255), nullable=True)  # Cloudinary public id
    thumbnail = Column(Text, default="", nullable=False)
    duration = Column(Integer, default=0, nullable=False)  # seconds
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("admins.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Video {self.title}>"


class Document(Base):
    """Course document stored in Cloudflare R2 (file_name is the object key)"""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    file_name = Column(String(1024), nullable=False)
    original_name = Column(String(512), nullable=False)
    file_size = Column(Integer, default=0, nullable=False)
    mime_type = Column(String(255), default="application/octet-stream", nullable=False)
    file_url = Column(Text, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    uploaded_by = Column(String(36), ForeignKey("admins.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Document {self.title}>"
