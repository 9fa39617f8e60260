"""
Unit Tests for enquiry capture and the ledger export
"""
import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook


class TestLeadCapture:

    @pytest.mark.asyncio
    async def test_lead_saved(self, client: AsyncClient):
        response = await client.post('/api/users', json={
            'name': 'Priya', 'mobile': '9012345678', 'course': 'GPSC Prelims Foundation',
        })

        assert response.status_code == 201
        assert response.json() == {'success': True, 'message': 'User saved successfully'}

    @pytest.mark.asyncio
    async def test_duplicate_mobile(self, client: AsyncClient):
        await client.post('/api/users', json={'name': 'Priya', 'mobile': '9012345678'})

        response = await client.post('/api/users', json={'name': 'Priya again', 'mobile': '9012345678'})

        assert response.status_code == 400
        assert response.json()['error'] == 'This mobile number is already registered.'

    @pytest.mark.asyncio
    async def test_invalid_mobile(self, client: AsyncClient):
        response = await client.post('/api/users', json={'name': 'Priya', 'mobile': '12-34'})

        assert response.status_code == 422


class TestExport:

    @pytest.mark.asyncio
    async def test_export_workbook(self, client: AsyncClient, admin_headers):
        await client.post('/api/users', json={'name': 'Priya', 'mobile': '9012345678', 'course': 'GPSC 2024'})

        response = await client.get('/api/export/GPSC 2024', headers=admin_headers)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith(
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        assert 'GPSC_2024-users.xlsx' in response.headers['content-disposition']
        ws = load_workbook(io.BytesIO(response.content)).active
        assert ws.cell(row=2, column=2).value == 'Priya'

    @pytest.mark.asyncio
    async def test_export_requires_admin(self, client: AsyncClient, student_headers):
        response = await client.get('/api/export/GPSC 2024', headers=student_headers)

        assert response.status_code == 403
