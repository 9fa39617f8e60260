"""
Unit Tests for manual UPI payment endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from academy.models import Enrollment, EnrollmentSource, PaymentStatus, Student, UpiPayment, UpiPaymentStatus


async def submit(client, headers, utr='UTR1234567890', **item):
    return await client.post('/api/upi-payments/submit-utr', json={'utrNumber': utr, **item}, headers=headers)


class TestInitiate:

    @pytest.mark.asyncio
    async def test_logged_in_link(self, client: AsyncClient, student_headers, test_series):
        response = await client.post('/api/upi-payments/initiate', json={'testSeriesId': test_series.id},
                                     headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['amount'] == 588.82
        assert data['upiUrl'].startswith('upi://pay?pa=academy@upi')
        assert 'am=588.82' in data['upiUrl']
        assert data['item']['id'] == test_series.id

    @pytest.mark.asyncio
    async def test_both_items_rejected(self, client: AsyncClient, student_headers, course, test_series):
        response = await client.post('/api/upi-payments/initiate',
                                     json={'courseId': course.id, 'testSeriesId': test_series.id},
                                     headers=student_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_public_initiate_pre_registers_buyer(self, client: AsyncClient, db_session, course):
        response = await client.post('/api/upi-payments/initiate-public', json={
            'courseId': course.id, 'email': 'Buyer@Academy-Mail.in', 'phone': '9123456780', 'name': 'Buyer',
        })

        assert response.status_code == 200
        pre_created = response.json()['preCreated']
        assert pre_created['tempPassword']

        buyer = (await db_session.execute(select(Student).where(Student.email == 'buyer@academy-mail.in'))).scalar_one()
        assert buyer.id == pre_created['studentId']
        enrollment = (await db_session.execute(select(Enrollment).where(Enrollment.student_id == buyer.id))).scalar_one()
        assert enrollment.payment_status == PaymentStatus.PENDING
        assert enrollment.source == EnrollmentSource.PUBLIC_UPI

    @pytest.mark.asyncio
    async def test_public_initiate_existing_buyer_gets_no_password(self, client: AsyncClient, student, course):
        response = await client.post('/api/upi-payments/initiate-public', json={
            'courseId': course.id, 'email': student.email, 'phone': student.mobile,
        })

        assert response.status_code == 200
        assert response.json()['preCreated'] == {'studentId': student.id, 'tempPassword': None}

    @pytest.mark.asyncio
    async def test_public_initiate_requires_contact(self, client: AsyncClient, course):
        response = await client.post('/api/upi-payments/initiate-public', json={'courseId': course.id})

        assert response.status_code == 400
        assert response.json()['error'] == 'Item ID, email and phone are required'


class TestSubmitUtr:

    @pytest.mark.asyncio
    async def test_submit_creates_pending_receipt(self, client: AsyncClient, student_headers, course):
        response = await submit(client, student_headers, courseId=course.id)

        assert response.status_code == 201
        receipt = response.json()['receipt']
        assert receipt['utrNumber'] == 'UTR1234567890'
        assert receipt['status'] == 'pending'
        assert receipt['amount'] == 10000

    @pytest.mark.asyncio
    async def test_duplicate_utr_rejected(self, client: AsyncClient, student_headers, other_student_headers,
                                          course, test_series):
        await submit(client, student_headers, courseId=course.id)

        response = await submit(client, other_student_headers, testSeriesId=test_series.id)

        assert response.status_code == 400
        assert response.json()['code'] == 'DUPLICATE_UTR'

    @pytest.mark.asyncio
    async def test_second_pending_for_same_item_rejected(self, client: AsyncClient, student_headers, course):
        await submit(client, student_headers, courseId=course.id)

        response = await submit(client, student_headers, utr='UTR0000000002', courseId=course.id)

        assert response.status_code == 400
        assert response.json()['code'] == 'PENDING_EXISTS'

    @pytest.mark.asyncio
    async def test_enrolled_student_rejected(self, client: AsyncClient, student_headers, student, course, enroll):
        await enroll(student, course=course)

        response = await submit(client, student_headers, courseId=course.id)

        assert response.status_code == 400
        assert response.json()['error'] == 'You already have access to this course'


class TestReview:

    @pytest.mark.asyncio
    async def test_approve_grants_enrollment(self, client: AsyncClient, db_session, student_headers,
                                             admin_headers, admin, student, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        pending = await client.get('/api/upi-payments/pending', headers=admin_headers)
        assert pending.json()['count'] == 1

        response = await client.post(f'/api/upi-payments/{payment_id}/approve', headers=admin_headers)

        assert response.status_code == 200
        payment = response.json()['payment']
        assert payment['status'] == 'approved'
        assert payment['approvedBy'] == admin.id

        enrollment = (await db_session.execute(
            select(Enrollment).where(Enrollment.student_id == student.id)
        )).scalar_one()
        assert enrollment.payment_status == PaymentStatus.PAID
        assert enrollment.source == EnrollmentSource.UPI
        assert enrollment.receipt_number == 'UTR1234567890'

    @pytest.mark.asyncio
    async def test_approve_twice_fails(self, client: AsyncClient, db_session, student_headers, admin_headers,
                                       student, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        await client.post(f'/api/upi-payments/{payment_id}/approve', headers=admin_headers)
        response = await client.post(f'/api/upi-payments/{payment_id}/approve', headers=admin_headers)

        assert response.status_code == 400
        assert response.json()['error'] == 'Payment is not pending'
        enrollments = (await db_session.execute(
            select(Enrollment).where(Enrollment.student_id == student.id)
        )).scalars().all()
        assert len(enrollments) == 1

    @pytest.mark.asyncio
    async def test_rejected_payment_cannot_be_approved(self, client: AsyncClient, db_session, student_headers,
                                                       admin_headers, student, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        rejected = await client.post(f'/api/upi-payments/{payment_id}/reject', headers=admin_headers)
        approved = await client.post(f'/api/upi-payments/{payment_id}/approve', headers=admin_headers)

        assert rejected.json()['payment']['status'] == 'rejected'
        assert approved.status_code == 400
        enrollments = (await db_session.execute(
            select(Enrollment).where(Enrollment.student_id == student.id)
        )).scalars().all()
        assert enrollments == []

    @pytest.mark.asyncio
    async def test_resubmission_after_rejection(self, client: AsyncClient, student_headers, admin_headers, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']
        await client.post(f'/api/upi-payments/{payment_id}/reject', headers=admin_headers)

        response = await submit(client, student_headers, utr='UTR0000000002', courseId=course.id)

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_approve_promotes_public_pending_enrollment(self, client: AsyncClient, db_session,
                                                              admin_headers, course):
        pre = (await client.post('/api/upi-payments/initiate-public', json={
            'courseId': course.id, 'email': 'walkin@academy-mail.in', 'phone': '9123456780',
        })).json()['preCreated']
        db_session.add(UpiPayment(
            name='Walk In', email='walkin@academy-mail.in', phone='9123456780', course_id=course.id,
            course_title=course.title, amount=course.price, utr_number='UTR5555555555',
        ))
        await db_session.commit()
        payment = (await db_session.execute(select(UpiPayment))).scalar_one()

        response = await client.post(f'/api/upi-payments/{payment.id}/approve', headers=admin_headers)

        assert response.status_code == 200
        rows = (await db_session.execute(
            select(Enrollment).where(Enrollment.student_id == pre['studentId'])
        )).scalars().all()
        assert len(rows) == 1
        await db_session.refresh(rows[0])
        assert rows[0].payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_unknown_payment(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/upi-payments/missing-id/approve', headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_students_cannot_review(self, client: AsyncClient, student_headers, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        response = await client.post(f'/api/upi-payments/{payment_id}/approve', headers=student_headers)

        assert response.status_code == 403


class TestReceipts:

    @pytest.mark.asyncio
    async def test_owner_and_admin_can_read(self, client: AsyncClient, student_headers, admin_headers, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        own = await client.get(f'/api/upi-payments/{payment_id}', headers=student_headers)
        as_admin = await client.get(f'/api/upi-payments/{payment_id}', headers=admin_headers)

        assert own.status_code == 200
        assert as_admin.json()['payment']['utrNumber'] == 'UTR1234567890'

    @pytest.mark.asyncio
    async def test_other_student_denied(self, client: AsyncClient, student_headers, other_student_headers, course):
        payment_id = (await submit(client, student_headers, courseId=course.id)).json()['receipt']['id']

        response = await client.get(f'/api/upi-payments/{payment_id}', headers=other_student_headers)

        assert response.status_code == 403
        assert response.json()['error'] == 'Access denied'

    @pytest.mark.asyncio
    async def test_my_payments(self, client: AsyncClient, student_headers, course):
        await submit(client, student_headers, courseId=course.id)

        response = await client.get('/api/upi-payments/my', headers=student_headers)

        assert [p['status'] for p in response.json()['payments']] == ['pending']
