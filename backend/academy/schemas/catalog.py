from pydantic import Field
from typing import Optional, List
from datetime import datetime

from academy.models.catalog import CourseCategory, TestSeriesCategory
from academy.schemas.base import CamelModel


# ========== Courses ==========

class CourseCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    category: CourseCategory
    duration: str = "12 months"
    thumbnail: str = ""
    features: List[str] = Field(default_factory=list)


class CourseUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    category: Optional[CourseCategory] = None
    duration: Optional[str] = None
    thumbnail: Optional[str] = None
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class CourseResponse(CamelModel):
    id: str
    title: str
    description: str
    price: int
    category: CourseCategory
    duration: str
    thumbnail: str
    features: List[str]
    is_active: bool
    created_at: datetime


class CourseSummary(CamelModel):
    id: str
    title: str
    description: str


# ========== Videos ==========

class VideoResponse(CamelModel):
    id: str
    title: str
    description: str
    video_url: str
    thumbnail: str
    duration: int
    order: int
    course_id: str


class VideoUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    order: Optional[int] = None


class VideoProgressUpdate(CamelModel):
    seconds: int = Field(..., ge=0)


class CourseWithVideos(CourseResponse):
    videos: List[VideoResponse] = Field(default_factory=list)


# ========== Test series ==========

class TestSeriesCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)
    category: TestSeriesCategory
    duration: str = "3 months"
    number_of_tests: int = Field(..., ge=1)
    features: List[str] = Field(default_factory=list)


class TestSeriesUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    category: Optional[TestSeriesCategory] = None
    duration: Optional[str] = None
    number_of_tests: Optional[int] = Field(None, ge=1)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class TestSeriesResponse(CamelModel):
    id: str
    title: str
    description: str
    price: int
    category: TestSeriesCategory
    duration: str
    number_of_tests: int
    features: List[str]
    is_active: bool
    created_at: datetime


# ========== Documents ==========

class DocumentResponse(CamelModel):
    id: str
    title: str
    description: str
    original_name: str
    file_size: int
    mime_type: str
    order: int
    course_id: str
    created_at: datetime


class DocumentUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None


# ========== Homepage ads ==========

class HomepageAdSave(CamelModel):
    """Creates an ad, or updates the one named by id"""
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    redirect_url: Optional[str] = None
    is_active: Optional[bool] = None
    order: Optional[int] = None


class HomepageAdResponse(CamelModel):
    id: str
    title: str
    description: str
    image_url: str
    redirect_url: str
    is_active: bool
    order: int
    created_at: datetime
