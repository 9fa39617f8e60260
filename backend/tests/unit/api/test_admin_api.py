"""
Unit Tests for the admin back office
"""
from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from academy.models import Admin, Enrollment, EnrollmentSource, LegacyUser, PaymentStatus, Video


class TestBootstrap:

    @pytest.mark.asyncio
    async def test_first_admin_created(self, client: AsyncClient, db_session):
        response = await client.post('/api/admin/create-admin', json={
            'name': 'Owner', 'email': 'Owner@Academy-Mail.in', 'password': 'owner-pass-1',
        })

        assert response.status_code == 201
        admin = (await db_session.execute(select(Admin))).scalar_one()
        assert admin.email == 'owner@academy-mail.in'
        assert admin.role == 'super_admin'

    @pytest.mark.asyncio
    async def test_refused_once_admin_exists(self, client: AsyncClient, admin):
        response = await client.post('/api/admin/create-admin', json={
            'name': 'Intruder', 'email': 'intruder@academy-mail.in', 'password': 'intruder-1',
        })

        assert response.status_code == 403


class TestDashboard:

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, db_session, admin_headers, student, course, enroll):
        await enroll(student, course=course)
        db_session.add(LegacyUser(name='Old Buyer', mobile='9000000009', course=course.title, amount=5000,
                                  receipt_number='SDN2023010001', payment_status='paid',
                                  payment_date=datetime(2023, 1, 5)))
        await db_session.commit()
        db_session.expunge_all()

        response = await client.get('/api/admin/dashboard', headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['stats']['totalStudents'] == 1
        assert data['stats']['totalCourses'] == 1
        assert data['stats']['totalPayments'] == 1
        assert data['stats']['totalRevenue'] == 5000
        assert data['recentEnrollments'][0]['item'] == course.title
        assert data['courseStats'][0]['enrollmentCount'] == 1
        assert data['courseStats'][0]['totalRevenue'] == 10000

    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient, student_headers):
        response = await client.get('/api/admin/dashboard', headers=student_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_features(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/admin/features', headers=admin_headers)

        keys = [f['key'] for f in response.json()['features']]
        assert 'upi_approvals' in keys
        assert 'manage_documents' in keys


class TestStudents:

    @pytest.mark.asyncio
    async def test_search_and_paginate(self, client: AsyncClient, admin_headers, student, other_student):
        response = await client.get('/api/admin/students', params={'search': student.mobile, 'limit': 5},
                                    headers=admin_headers)

        data = response.json()
        assert [s['id'] for s in data['students']] == [student.id]
        assert data['pagination'] == {'totalPages': 1, 'currentPage': 1, 'totalRecords': 1}

    @pytest.mark.asyncio
    async def test_detail_lists_enrollments(self, client: AsyncClient, admin_headers, student, course,
                                            test_series, enroll):
        await enroll(student, course=course)
        await enroll(student, series=test_series)

        response = await client.get(f'/api/admin/students/{student.id}', headers=admin_headers)

        data = response.json()['student']
        assert data['enrolledCourses'][0]['courseId'] == course.id
        assert data['purchasedTestSeries'][0]['testSeriesId'] == test_series.id

    @pytest.mark.asyncio
    async def test_deactivate_hides_student(self, client: AsyncClient, admin_headers, student):
        updated = await client.put(f'/api/admin/students/{student.id}', json={'isActive': False},
                                   headers=admin_headers)
        listing = await client.get('/api/admin/students', headers=admin_headers)

        assert updated.json()['student']['isActive'] is False
        assert listing.json()['students'] == []


class TestCatalogOverview:

    @pytest.mark.asyncio
    async def test_courses_with_video_counts(self, client: AsyncClient, db_session, admin_headers, course):
        db_session.add_all([
            Video(title='One', video_url='https://v/1', course_id=course.id),
            Video(title='Two', video_url='https://v/2', course_id=course.id, is_active=False),
        ])
        await db_session.commit()

        response = await client.get('/api/admin/courses', headers=admin_headers)
        videos = await client.get('/api/admin/videos', params={'courseId': course.id}, headers=admin_headers)

        assert response.json()['courses'][0]['videoCount'] == 1
        assert videos.json()['videos'][0]['courseTitle'] == course.title
        assert videos.json()['pagination']['totalRecords'] == 1

    @pytest.mark.asyncio
    async def test_course_students(self, client: AsyncClient, admin_headers, student, other_student, course, enroll):
        await enroll(student, course=course)
        await enroll(other_student, course=course, status=PaymentStatus.PENDING)

        count = await client.get(f'/api/admin/courses/{course.id}/enrollment-count', headers=admin_headers)
        students = await client.get(f'/api/admin/courses/{course.id}/students', headers=admin_headers)

        assert count.json()['enrollmentCount'] == 1
        assert [s['id'] for s in students.json()['students']] == [student.id]


class TestPaymentHistory:

    @pytest.mark.asyncio
    async def test_merges_enrollments_and_ledger(self, client: AsyncClient, db_session, admin_headers,
                                                 student, course, enroll):
        await enroll(student, course=course)
        db_session.add(LegacyUser(name='Old Buyer', mobile='9000000009', course=course.title, amount=5000,
                                  receipt_number='SDN2023010001', payment_status='paid',
                                  payment_date=datetime(2023, 1, 5)))
        db_session.add(LegacyUser(name='Lead', mobile='9000000010', course=course.title))
        await db_session.commit()
        db_session.expunge_all()

        response = await client.get('/api/admin/payments', params={'course': course.id}, headers=admin_headers)

        payments = response.json()['payments']
        assert [p['source'] for p in payments] == ['student', 'legacy']
        assert payments[0]['course'] == course.title
        assert payments[0]['rail'] == 'admin'
        assert response.json()['pagination']['totalRecords'] == 2


class TestManualEnrollment:

    @pytest.mark.asyncio
    async def test_add_student_to_course_by_email(self, client: AsyncClient, db_session, admin_headers,
                                                  student, course):
        response = await client.post('/api/admin/add-student-to-course', json={
            'email': student.email.upper(), 'courseId': course.id,
        }, headers=admin_headers)

        assert response.status_code == 200
        enrollment = (await db_session.execute(select(Enrollment))).scalar_one()
        assert enrollment.source == EnrollmentSource.ADMIN
        assert enrollment.receipt_number.startswith('ADM')
        assert enrollment.amount == course.price

    @pytest.mark.asyncio
    async def test_add_twice_rejected(self, client: AsyncClient, admin_headers, student, course):
        payload = {'studentId': student.id}
        await client.post(f'/api/admin/courses/{course.id}/students', json=payload, headers=admin_headers)

        response = await client.post(f'/api/admin/courses/{course.id}/students', json=payload,
                                     headers=admin_headers)

        assert response.status_code == 400
        assert response.json()['error'] == 'Student already enrolled'

    @pytest.mark.asyncio
    async def test_add_to_test_series_with_custom_amount(self, client: AsyncClient, db_session, admin_headers,
                                                         student, test_series):
        response = await client.post('/api/admin/add-student-to-test-series', json={
            'mobile': student.mobile, 'testSeriesId': test_series.id, 'amount': 0,
        }, headers=admin_headers)

        assert response.status_code == 200
        enrollment = (await db_session.execute(select(Enrollment))).scalar_one()
        assert enrollment.receipt_number.startswith('TSADM')
        assert enrollment.amount == 0

    @pytest.mark.asyncio
    async def test_unknown_student(self, client: AsyncClient, admin_headers, course):
        response = await client.post('/api/admin/add-student-to-course', json={
            'email': 'nobody@academy-mail.in', 'courseId': course.id,
        }, headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_access(self, client: AsyncClient, db_session, admin_headers, student, course, enroll):
        await enroll(student, course=course)

        removed = await client.post('/api/admin/remove-student-from-course', json={
            'courseId': course.id, 'studentId': student.id,
        }, headers=admin_headers)
        again = await client.delete(f'/api/admin/courses/{course.id}/students/{student.id}', headers=admin_headers)

        assert removed.status_code == 200
        assert again.status_code == 404
        assert (await db_session.execute(select(Enrollment))).scalars().all() == []
