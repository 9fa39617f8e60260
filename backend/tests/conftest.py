"""
Tushti Academy - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RAZORPAY_KEY_ID'] = 'rzp_test_key'
os.environ['RAZORPAY_KEY_SECRET'] = 'rzp_test_secret'
os.environ['UPI_VPA'] = 'academy@upi'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = 'logs/test.log'

from academy.main import app
from academy.core.database import Base, get_db
from academy.core.security import get_password_hash, create_access_token
from academy.models import Admin, Course, CourseCategory, Enrollment, EnrollmentSource, PaymentStatus, Student
from academy.models import TestSeries, TestSeriesCategory

fake = Faker('en_IN')

STUDENT_PASSWORD = 'student-pass-123'
ADMIN_PASSWORD = 'admin-pass-123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


def make_email() -> str:
    return f"{fake.user_name()}.{fake.random_number(digits=5)}@academy-mail.in"


def make_mobile() -> str:
    return str(fake.random_int(min=6000000000, max=9999999999))


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def open_session(db_session: AsyncSession):
    """Factory for extra sessions on the test database, standing in for concurrent requests"""
    sessions = []

    def _open() -> AsyncSession:
        session = TestSessionLocal()
        sessions.append(session)
        return session

    yield _open

    for session in sessions:
        await session.close()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def student(db_session: AsyncSession) -> Student:
    """Create a test student"""
    student = Student(
        name=fake.name(),
        email=make_email(),
        mobile=make_mobile(),
        password_hash=get_password_hash(STUDENT_PASSWORD),
        watched_progress={},
    )
    db_session.add(student)
    await db_session.commit()
    await db_session.refresh(student)
    return student


@pytest.fixture
async def other_student(db_session: AsyncSession) -> Student:
    student = Student(
        name=fake.name(),
        email=make_email(),
        mobile=make_mobile(),
        password_hash=get_password_hash(STUDENT_PASSWORD),
        watched_progress={},
    )
    db_session.add(student)
    await db_session.commit()
    await db_session.refresh(student)
    return student


@pytest.fixture
async def admin(db_session: AsyncSession) -> Admin:
    """Create an admin account"""
    admin = Admin(
        name=fake.name(),
        email=make_email(),
        password_hash=get_password_hash(ADMIN_PASSWORD),
        role='super_admin',
    )
    db_session.add(admin)
    await db_session.commit()
    await db_session.refresh(admin)
    return admin


@pytest.fixture
async def course(db_session: AsyncSession) -> Course:
    course = Course(
        title='GPSC Prelims Foundation',
        description=fake.paragraph(),
        price=10000,
        category=CourseCategory.GPSC,
        features=['Live classes', 'Notes'],
    )
    db_session.add(course)
    await db_session.commit()
    await db_session.refresh(course)
    return course


@pytest.fixture
async def test_series(db_session: AsyncSession) -> TestSeries:
    series = TestSeries(
        title='UPSC Mock Series',
        description=fake.paragraph(),
        price=499,
        category=TestSeriesCategory.UPSC,
        number_of_tests=20,
        features=[],
    )
    db_session.add(series)
    await db_session.commit()
    await db_session.refresh(series)
    return series


@pytest.fixture
def enroll(db_session: AsyncSession):
    """Factory that gives a student a paid enrollment in a course or test series"""
    async def _enroll(student: Student, course: Course = None, series: TestSeries = None,
                      status: PaymentStatus = PaymentStatus.PAID) -> Enrollment:
        enrollment = Enrollment(
            student_id=student.id,
            course_id=course.id if course else None,
            test_series_id=series.id if series else None,
            payment_status=status,
            source=EnrollmentSource.ADMIN,
            receipt_number=f"ADM{fake.random_number(digits=13, fix_len=True)}" if status == PaymentStatus.PAID else None,
            amount=(course or series).price,
        )
        db_session.add(enrollment)
        await db_session.commit()
        await db_session.refresh(enrollment)
        db_session.expunge(enrollment)
        return enrollment
    return _enroll


@pytest.fixture
def student_headers(student: Student) -> dict:
    """Generate authentication headers for the test student"""
    token = create_access_token(student.id, 'student')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def other_student_headers(other_student: Student) -> dict:
    token = create_access_token(other_student.id, 'student')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(admin: Admin) -> dict:
    """Generate authentication headers for the admin"""
    token = create_access_token(admin.id, 'admin')
    return {'Authorization': f'Bearer {token}'}
