"""
Unit Tests for course document endpoints
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import AsyncClient

from academy.core.exceptions import DocumentUnavailableError
from academy.models import Document
from academy.services.document_delivery import DocumentDelivery
from academy.services.r2_storage import r2_storage


@pytest.fixture
async def document(db_session, course) -> Document:
    document = Document(
        title='Polity Notes',
        file_name='documents/course/1700000000000-polity notes.pdf',
        original_name='polity notes.pdf',
        file_size=2048,
        mime_type='application/pdf',
        file_url='https://r2.example.in/bucket/documents/course/polity.pdf',
        course_id=course.id,
    )
    db_session.add(document)
    await db_session.commit()
    await db_session.refresh(document)
    return document


def delivery_serving(body: bytes) -> DocumentDelivery:
    async def stored(document):
        return document.file_url

    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
    return DocumentDelivery(strategies=[('stored_url', stored)], transport=transport)


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_to_r2(self, client: AsyncClient, admin_headers, course):
        upload = AsyncMock(return_value={
            'key': 'documents/c/1-notes.pdf', 'url': 'https://r2.example.in/b/documents/c/1-notes.pdf',
            'size_bytes': 4,
        })

        with patch.object(r2_storage, 'upload_file', upload):
            response = await client.post(
                f'/api/documents/courses/{course.id}',
                data={'title': 'Week 1 notes'},
                files={'document': ('notes.pdf', b'%PDF', 'application/pdf')},
                headers=admin_headers,
            )

        assert response.status_code == 201
        document = response.json()['document']
        assert document['title'] == 'Week 1 notes'
        assert document['originalName'] == 'notes.pdf'
        assert document['fileSize'] == 4
        key, content, content_type = upload.await_args.args
        assert key.startswith(f'documents/{course.id}/')
        assert key.endswith('-notes.pdf')
        assert content_type == 'application/pdf'

    @pytest.mark.asyncio
    async def test_upload_unknown_course(self, client: AsyncClient, admin_headers):
        with patch.object(r2_storage, 'upload_file', AsyncMock()) as upload:
            response = await client.post(
                '/api/documents/courses/missing',
                files={'document': ('notes.pdf', b'%PDF', 'application/pdf')},
                headers=admin_headers,
            )

        assert response.status_code == 404
        upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, client: AsyncClient, admin_headers, course):
        response = await client.post(
            f'/api/documents/courses/{course.id}',
            files={'document': ('notes.pdf', b'', 'application/pdf')},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()['error'] == 'No file uploaded'

    @pytest.mark.asyncio
    async def test_unconfigured_storage(self, client: AsyncClient, admin_headers, course):
        response = await client.post(
            f'/api/documents/courses/{course.id}',
            files={'document': ('notes.pdf', b'%PDF', 'application/pdf')},
            headers=admin_headers,
        )

        assert response.status_code == 503
        assert response.json()['code'] == 'SERVICE_NOT_CONFIGURED'


class TestDownload:

    @pytest.mark.asyncio
    async def test_download_url_for_enrolled_student(self, client: AsyncClient, student_headers, student,
                                                     course, document, enroll):
        await enroll(student, course=course)

        with patch.object(r2_storage, 'get_presigned_url', AsyncMock(return_value='https://signed.example/doc')):
            response = await client.get(f'/api/documents/{document.id}/download', headers=student_headers)

        assert response.status_code == 200
        assert response.json()['downloadUrl'] == 'https://signed.example/doc'
        assert response.json()['document']['originalName'] == 'polity notes.pdf'

    @pytest.mark.asyncio
    async def test_download_denied_without_enrollment(self, client: AsyncClient, student_headers, document):
        response = await client.get(f'/api/documents/{document.id}/download', headers=student_headers)

        assert response.status_code == 403
        assert response.json()['error'] == 'You need to be enrolled in this course to download documents'

    @pytest.mark.asyncio
    async def test_stream_proxies_bytes(self, client: AsyncClient, student_headers, student, course,
                                        document, enroll):
        await enroll(student, course=course)

        with patch('academy.api.endpoints.documents.document_delivery', delivery_serving(b'%PDF-1.7 data')):
            response = await client.get(f'/api/documents/stream/{document.id}', headers=student_headers)

        assert response.status_code == 200
        assert response.content == b'%PDF-1.7 data'
        assert response.headers['content-type'] == 'application/pdf'
        disposition = response.headers['content-disposition']
        assert disposition.startswith('attachment; filename="polity notes.pdf"')
        assert "filename*=UTF-8''polity%20notes.pdf" in disposition

    @pytest.mark.asyncio
    async def test_stream_reports_unavailable(self, client: AsyncClient, admin_headers, document):
        failing = AsyncMock(side_effect=DocumentUnavailableError([{'strategy': 'stored_url', 'outcome': '404'}]))

        with patch('academy.api.endpoints.documents.document_delivery') as delivery:
            delivery.open = failing
            response = await client.get(f'/api/documents/stream/{document.id}', headers=admin_headers)

        assert response.status_code == 502
        assert response.json() == {
            'success': False,
            'error': 'Document is temporarily unavailable',
            'code': 'DOCUMENT_UNAVAILABLE',
        }


class TestManage:

    @pytest.mark.asyncio
    async def test_list_requires_login(self, client: AsyncClient, course, document):
        response = await client.get(f'/api/documents/courses/{course.id}')

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_update_and_soft_delete(self, client: AsyncClient, admin_headers, student_headers,
                                          course, document):
        updated = await client.put(f'/api/documents/{document.id}', json={'title': 'Polity Notes v2'},
                                   headers=admin_headers)
        deleted = await client.delete(f'/api/documents/{document.id}', headers=admin_headers)
        listing = await client.get(f'/api/documents/courses/{course.id}', headers=student_headers)
        download = await client.get(f'/api/documents/{document.id}/download', headers=admin_headers)

        assert updated.json()['document']['title'] == 'Polity Notes v2'
        assert deleted.status_code == 200
        assert listing.json()['documents'] == []
        assert download.status_code == 404
