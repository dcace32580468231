import sys
import os
import tempfile
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SSLCOMMERZ_STORE_ID", "testbox")
os.environ.setdefault("SSLCOMMERZ_STORE_PASSWORD", "qwerty")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="lms-test-logs-"))

import uuid
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.core.constants import (
    RoleEnum,
    EnrollmentStatusEnum,
    EnrollmentPaymentStatusEnum,
    PaymentStatusEnum,
    PaymentGatewayEnum,
)
from app.core.database import Base, SessionLocal, get_engine
from app.models.user import User
from app.models.course import Course
from app.models.chapter import Chapter
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress
from app.models.course_enrollment import CourseEnrollment
from app.models.payment import Payment
from app.services.sslcommerz import SSLCommerzClient
from app.utils import deps as deps_utils
import main


@pytest.fixture(scope="session")
def database_engine():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if settings.DATABASE_URL.startswith("sqlite:///./") and os.path.exists("./test.db"):
        os.remove("./test.db")


@pytest.fixture(scope="function")
def db_session(database_engine):
    db = SessionLocal(bind=database_engine)
    try:
        yield db
    finally:
        db.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
        db.close()


@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def gateway():
    """Stand-in for the SSLCOMMERZ client; every call is an AsyncMock."""
    return AsyncMock(spec=SSLCommerzClient)


@pytest.fixture
def user_factory(db_session):
    def _user_factory(role=RoleEnum.STUDENT, is_active=True):
        user = User(
            full_name=f"Test {role.value}",
            email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _user_factory


@pytest.fixture
def student(user_factory):
    return user_factory(RoleEnum.STUDENT)


@pytest.fixture
def admin(user_factory):
    return user_factory(RoleEnum.ADMIN)


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = jwt.encode({"sub": str(user.id)}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def course_factory(db_session):
    """Course with one chapter holding `lessons` published lessons."""
    def _course_factory(lessons=0, unpublished=0, is_paid=False, price=0, sale_price=None):
        course = Course(
            title=f"Course {uuid.uuid4().hex[:6]}",
            is_paid=is_paid,
            price=price,
            sale_price=sale_price,
        )
        db_session.add(course)
        db_session.flush()
        chapter = Chapter(title="Chapter 1", order=1, course_id=course.id)
        db_session.add(chapter)
        db_session.flush()
        for i in range(lessons + unpublished):
            db_session.add(Lesson(
                title=f"Lesson {i + 1}",
                order=i + 1,
                chapter_id=chapter.id,
                course_id=course.id,
                is_published=i < lessons,
            ))
        db_session.commit()
        db_session.refresh(course)
        return course
    return _course_factory


@pytest.fixture
def add_lessons(db_session):
    def _add_lessons(course, count=1):
        chapter = db_session.query(Chapter).filter(Chapter.course_id == course.id).first()
        for i in range(count):
            db_session.add(Lesson(
                title=f"Extra lesson {uuid.uuid4().hex[:4]}",
                order=100 + i,
                chapter_id=chapter.id,
                course_id=course.id,
                is_published=True,
            ))
        db_session.commit()
    return _add_lessons


@pytest.fixture
def enrollment_factory(db_session):
    def _enrollment_factory(
        student,
        course,
        status=EnrollmentStatusEnum.ACTIVE,
        progress=0,
        payment_status=EnrollmentPaymentStatusEnum.PAID,
    ):
        enrollment = CourseEnrollment(
            student_id=student.id,
            course_id=course.id,
            status=status,
            progress=progress,
            payment_status=payment_status,
        )
        db_session.add(enrollment)
        db_session.commit()
        db_session.refresh(enrollment)
        return enrollment
    return _enrollment_factory


@pytest.fixture
def complete_lessons(db_session):
    """Mark the first `count` published lessons of a course complete for a student."""
    def _complete_lessons(student, course, count):
        lessons = (
            db_session.query(Lesson)
            .filter(Lesson.course_id == course.id, Lesson.is_published.is_(True))
            .order_by(Lesson.order)
            .limit(count)
            .all()
        )
        for lesson in lessons:
            db_session.add(LessonProgress(
                user_id=student.id,
                course_id=course.id,
                lesson_id=lesson.id,
                is_completed=True,
            ))
        db_session.commit()
    return _complete_lessons


@pytest.fixture
def payment_factory(db_session):
    def _payment_factory(
        enrollment,
        status=PaymentStatusEnum.SUCCESS,
        amount=1000.0,
        bank_tran_id="BANK123",
        **fields
    ):
        payment = Payment(
            transaction_id=f"ENROLL_{enrollment.course_id}_{enrollment.student_id}_{uuid.uuid4().hex[:12]}",
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            amount=amount,
            currency="BDT",
            status=status,
            payment_gateway=PaymentGatewayEnum.SSLCOMMERZ,
            bank_tran_id=bank_tran_id,
            **fields
        )
        db_session.add(payment)
        db_session.commit()
        db_session.refresh(payment)
        return payment
    return _payment_factory
