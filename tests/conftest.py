"""Shared fixtures for the enrollment lifecycle tests."""
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

import secretaria.models  # noqa: F401  registers every mapper
from secretaria.models.contract import Contract
from secretaria.models.course import Course, DurationType
from secretaria.models.enrollment import Enrollment, EnrollmentStatus


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def make_enrollment():
    """Build an in-memory enrollment in any status."""
    def _make(
        status=EnrollmentStatus.PENDING,
        enrollment_id=10,
        student_id=1,
        course_id=1,
        current_semester=None,
        period=(1, 2026),
    ):
        enrollment = Enrollment.create_new(
            student_id=student_id,
            course_id=course_id,
            enrollment_date=date(2026, 2, 1),
            initial_status=EnrollmentStatus.PENDING,
            current_semester=current_semester,
            period_semester=period[0] if period else None,
            period_year=period[1] if period else None,
        )
        enrollment.id = enrollment_id
        enrollment._status = EnrollmentStatus(status).value
        return enrollment
    return _make


@pytest.fixture
def make_course():
    def _make(duration=8, duration_type=DurationType.SEMESTERS.value, course_id=1):
        course = Course(name="Sistemas de Informação", duration=duration, duration_type=duration_type)
        course.id = course_id
        return course
    return _make


@pytest.fixture
def make_contract():
    def _make(contract_id=100, enrollment_id=10, student_id=1, semester=1, year=2026, accepted_at=None):
        contract = Contract(
            enrollment_id=enrollment_id,
            student_id=student_id,
            semester=semester,
            year=year,
            accepted_at=accepted_at,
            file_name=f"contrato_{enrollment_id}_{year}_{semester}.pdf",
        )
        contract.id = contract_id
        return contract
    return _make
