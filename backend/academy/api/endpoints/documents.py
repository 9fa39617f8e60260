"""
Course documents: R2 uploads, signed downloads and a proxied stream.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.config import settings
from academy.core.database import get_db
from academy.core.exceptions import CourseNotFoundError, DocumentNotFoundError, ValidationError
from academy.core.logging_config import logger
from academy.models.catalog import Course, Document
from academy.modules.auth.dependencies import CurrentAccount, get_current_account, require_admin
from academy.schemas.catalog import DocumentResponse, DocumentUpdate
from academy.services.document_delivery import document_delivery
from academy.services.enrollment_service import ensure_course_access
from academy.services.r2_storage import document_key, r2_storage

router = APIRouter()

NOT_ENROLLED_MESSAGE = "You need to be enrolled in this course to download documents"


def _document(document: Document) -> dict:
    return DocumentResponse.model_validate(document).model_dump(by_alias=True, mode="json")


async def _get_document(db: AsyncSession, document_id: str, active_only: bool = True) -> Document:
    document = await db.get(Document, document_id)
    if document is None or (active_only and not document.is_active):
        raise DocumentNotFoundError(document_id)
    return document


def _attachment_header(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode() or "document"
    ascii_name = ascii_name.replace('"', "")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/courses/{course_id}", status_code=status.HTTP_201_CREATED)
async def upload_document(
    course_id: str,
    title: str = Form(""),
    description: str = Form(""),
    order: int = Form(0),
    document: UploadFile = File(...),
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    content = await document.read()
    if not content:
        raise ValidationError("No file uploaded", field="document")
    if len(content) > settings.MAX_DOCUMENT_SIZE:
        raise ValidationError(
            f"File size too large. Maximum size is {settings.MAX_DOCUMENT_SIZE // (1024 * 1024)}MB.",
            field="document",
        )

    if await db.get(Course, course_id) is None:
        raise CourseNotFoundError(course_id)

    original_name = document.filename or "document"
    mime_type = document.content_type or "application/octet-stream"
    uploaded = await r2_storage.upload_file(document_key(course_id, original_name), content, mime_type)

    record = Document(
        title=title.strip() or original_name,
        description=description,
        file_name=uploaded["key"],
        original_name=original_name,
        file_size=len(content),
        mime_type=mime_type,
        file_url=uploaded["url"],
        order=order,
        course_id=course_id,
        uploaded_by=admin.id,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)

    logger.info(f"[Documents] Document {record.id} uploaded to course {course_id} ({len(content)} bytes)")
    return {"success": True, "message": "Document uploaded successfully", "document": _document(record)}


@router.get("/courses/{course_id}")
async def list_course_documents(
    course_id: str,
    account: CurrentAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Document)
        .where(Document.course_id == course_id, Document.is_active.is_(True))
        .order_by(Document.order, Document.created_at)
    )
    return {"success": True, "documents": [_document(d) for d in result.scalars().all()]}


@router.get("/{document_id}/download")
async def get_download_url(
    document_id: str,
    account: CurrentAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """One-hour presigned R2 URL for enrolled students (and admins)"""
    document = await _get_document(db, document_id)
    await ensure_course_access(db, account, document.course_id, NOT_ENROLLED_MESSAGE)

    url = await r2_storage.get_presigned_url(document.file_name, settings.R2_URL_EXPIRY)
    return {
        "success": True,
        "downloadUrl": url,
        "document": {
            "title": document.title,
            "originalName": document.original_name,
            "fileSize": document.file_size,
            "mimeType": document.mime_type,
        },
    }


@router.get("/stream/{document_id}")
async def stream_document(
    document_id: str,
    account: CurrentAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """Proxy the file bytes from the first storage location that answers"""
    document = await _get_document(db, document_id)
    await ensure_course_access(db, account, document.course_id, NOT_ENROLLED_MESSAGE)

    opened = await document_delivery.open(document)
    headers = {"Content-Disposition": _attachment_header(document.original_name)}

    return StreamingResponse(
        opened.iter_bytes(),
        media_type=document.mime_type or opened.content_type,
        headers=headers,
    )


@router.put("/{document_id}")
async def update_document(
    document_id: str,
    payload: DocumentUpdate,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    document = await _get_document(db, document_id, active_only=False)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(document, field, value)
    await db.commit()
    await db.refresh(document)
    return {"success": True, "message": "Document updated successfully", "document": _document(document)}


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    admin: CurrentAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete; the stored object is kept"""
    document = await _get_document(db, document_id, active_only=False)
    document.is_active = False
    await db.commit()
    return {"success": True, "message": "Document deleted successfully"}
