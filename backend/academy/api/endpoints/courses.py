from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from academy.core.config import settings
from academy.core.database import get_db
from academy.core.exceptions import (
    CourseNotFoundError, EnrollmentRequiredError, ValidationError, VideoNotFoundError,
)
from academy.core.logging_config import logger
from academy.models.account import Student
from academy.models.catalog import Course, Document, Video
from academy.modules.auth.dependencies import (
    CurrentAccount, require_admin, require_student, require_student_account,
)
from academy.schemas.catalog import (
    CourseCreate, CourseResponse, CourseUpdate, DocumentResponse, VideoProgressUpdate, VideoResponse,
    VideoUpdate,
)
from academy.services.cloudinary_service import cloudinary_service
from academy.services.enrollment_service import ensure_course_access, has_course_access

router = APIRouter()


def _course(course: Course) -> dict:
    return CourseResponse.model_validate(course).model_dump(by_alias=True, mode="json")


def _video(video: Video) -> dict:
    return VideoResponse.model_validate(video).model_dump(by_alias=True, mode="json")


async def _get_course(db: AsyncSession, course_id: str) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


async def _active_videos(db: AsyncSession, course_id: str):
    result = await db.execute(
        select(Video)
        .where(Video.course_id == course_id, Video.is_active.is_(True))
        .order_by(Video.order, Video.created_at)
    )
    return result.scalars().all()


async def _get_video(db: AsyncSession, course_id: str, video_id: str, active_only: bool = True) -> Video:
    stmt = select(Video).where(Video.id == video_id, Video.course_id == course_id)
    if active_only:
        stmt = stmt.where(Video.is_active.is_(True))
    video = (await db.execute(stmt)).scalar_one_or_none()
    if video is None:
        raise VideoNotFoundError(video_id)
    return video


# ========== Public catalog ==========

@router.get("")
async def list_courses(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Course).where(Course.is_active.is_(True)).order_by(Course.created_at.desc())
    )
    return {"success": True, "courses": [_course(c) for c in result.scalars().all()]}


@router.get("/{course_id}")
async def get_course(course_id: str, db: AsyncSession = Depends(get_db)):
    """Course detail with its active videos"""
    course = await _get_course(db, course_id)
    return {
        "success": True,
        "course": {**_course(course), "videos": [_video(v) for v in await _active_videos(db, course_id)]},
    }


# ========== Enrolled content ==========

@router.get("/{course_id}/videos")
async def get_course_videos(
    course_id: str,
    account: CurrentAccount = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    await ensure_course_access(db, account, course_id)
    course = await _get_course(db, course_id)
    return {
        "success": True,
        "course": {"id": course.id, "title": course.title, "description": course.description},
        "videos": [_video(v) for v in await _active_videos(db, course_id)],
    }


@router.get("/{course_id}/materials")
async def get_course_materials(
    course_id: str,
    account: CurrentAccount = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    await ensure_course_access(db, account, course_id, "Access denied")
    result = await db.execute(
        select(Document)
        .where(Document.course_id == course_id, Document.is_active.is_(True))
        .order_by(Document.order, Document.created_at)
    )
    materials = [
        DocumentResponse.model_validate(d).model_dump(by_alias=True, mode="json")
        for d in result.scalars().all()
    ]
    return {"success": True, "materials": materials}


@router.get("/{course_id}/videos/{video_id}")
async def get_course_video(
    course_id: str,
    video_id: str,
    account: CurrentAccount = Depends(require_student),
    db: AsyncSession = Depends(get_db)
):
    """Video metadata plus a playback URL (Cloudinary-signed when the asset id is known)"""
    await ensure_course_access(db, account, course_id)
    video = await _get_video(db, course_id, video_id)

    payload = _video(video)
    if video.public_id and settings.cloudinary_configured():
        payload["videoUrl"] = cloudinary_service.delivery_url(video.public_id, resource_type="video")
    return {"success": True, "video": payload}


@router.patch("/{course_id}/videos/{video_id}/progress")
async def save_video_progress(
    course_id: str,
    video_id: str,
    payload: VideoProgressUpdate,
    student: Student = Depends(require_student_account),
    db: AsyncSession = Depends(get_db)
):
    """Remember how far the student got in a video (seconds)"""
    if not await has_course_access(db, student.id, course_id):
        raise EnrollmentRequiredError("Access denied")
    await _get_video(db, course_id, video_id)

    # Reassign so the JSON column is flagged dirty
    student.watched_progress = {**(student.watched_progress or {}), video_id: payload.seconds}
    await db.commit()
    return {"success": True, "message": "Progress saved"}


# ========== Admin: courses ==========

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    course = Course(**payload.model_dump(), created_by=admin.id)
    db.add(course)
    await db.commit()
    await db.refresh(course)

    logger.info(f"[Courses] Course {course.id} created by admin {admin.id}")
    return {"success": True, "message": "Course created successfully", "course": _course(course)}


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await _get_course(db, course_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(course, field, value)
    await db.commit()
    await db.refresh(course)
    return {"success": True, "message": "Course updated successfully", "course": _course(course)}


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete"""
    course = await _get_course(db, course_id)
    course.is_active = False
    await db.commit()
    return {"success": True, "message": "Course deleted successfully"}


# ========== Admin: videos ==========

@router.post("/{course_id}/videos", status_code=status.HTTP_201_CREATED)
async def upload_course_video(
    course_id: str,
    title: str = Form(...),
    description: str = Form(""),
    duration: Optional[int] = Form(None),
    order: int = Form(0),
    video: UploadFile = File(...),
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Upload a video file to Cloudinary and attach it to the course"""
    if not title.strip():
        raise ValidationError("Title and video file are required", field="title")
    if not (video.content_type or "").startswith("video/"):
        raise ValidationError("Invalid file type. Only video files are allowed.", field="video")

    content = await video.read()
    if len(content) > settings.MAX_VIDEO_SIZE:
        raise ValidationError(
            f"File size too large. Maximum size is {settings.MAX_VIDEO_SIZE // (1024 * 1024)}MB.",
            field="video",
        )

    await _get_course(db, course_id)

    uploaded = await cloudinary_service.upload_video(
        content, video.filename or "video", folder=f"courses/{course_id}/videos"
    )
    record = Video(
        title=title.strip(),
        description=description,
        video_url=uploaded["url"],
        public_id=uploaded["public_id"],
        thumbnail=cloudinary_service.thumbnail_url(uploaded["public_id"]),
        duration=duration if duration is not None else uploaded["duration"],
        order=order,
        course_id=course_id,
        created_by=admin.id,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)

    logger.info(f"[Courses] Video {record.id} uploaded to course {course_id}")
    return {"success": True, "message": "Video uploaded successfully", "video": _video(record)}


@router.put("/{course_id}/videos/{video_id}")
async def update_course_video(
    course_id: str,
    video_id: str,
    payload: VideoUpdate,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    video = await _get_video(db, course_id, video_id, active_only=False)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(video, field, value)
    await db.commit()
    await db.refresh(video)
    return {"success": True, "message": "Video updated successfully", "video": _video(video)}


@router.delete("/{course_id}/videos/{video_id}")
async def delete_course_video(
    course_id: str,
    video_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete; the Cloudinary asset is kept"""
    video = await _get_video(db, course_id, video_id, active_only=False)
    video.is_active = False
    await db.commit()
    return {"success": True, "message": "Video deleted successfully"}
