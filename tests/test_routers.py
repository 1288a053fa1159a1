"""HTTP tests for the enrollment, contract, document and reenrollment routes."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from secretaria.core.exceptions import (
    AuthenticationFailedError,
    DuplicateOpenEnrollmentError,
    InvalidTransitionError,
)
from secretaria.main import app
from secretaria.models.enrollment import EnrollmentStatus
from secretaria.routers.enrollments import get_enrollment_service
from secretaria.routers.reenrollment import get_reenrollment_service
from secretaria.services.enrollment_service import EnrollmentService


@pytest.fixture
def enrollment_service():
    service = MagicMock()
    service.document_service = MagicMock()
    service.contract_service = MagicMock()
    return service


@pytest.fixture
def reenrollment_service():
    return MagicMock()


@pytest.fixture
def client(enrollment_service, reenrollment_service):
    app.dependency_overrides[get_enrollment_service] = lambda: enrollment_service
    app.dependency_overrides[get_reenrollment_service] = lambda: reenrollment_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestEnrollmentRoutes:
    def test_create(self, client, enrollment_service, make_enrollment):
        enrollment_service.create_enrollment = AsyncMock(
            return_value=make_enrollment(EnrollmentStatus.CONTRACT, enrollment_id=21)
        )

        response = client.post("/api/v1/enrollments/", json={"student_id": 1, "course_id": 1})

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 21
        assert body["status"] == "contract"
        assert "X-Process-Time" in response.headers
        enrollment_service.create_enrollment.assert_awaited_once_with(
            student_id=1, course_id=1, enrollment_date=None, current_semester=None, require_contract=None
        )

    def test_create_duplicate_names_the_conflict(self, client, enrollment_service):
        enrollment_service.create_enrollment = AsyncMock(side_effect=DuplicateOpenEnrollmentError(
            1, conflicting_enrollment_id=5, conflicting_status="pending", course_id=2
        ))

        response = client.post("/api/v1/enrollments/", json={"student_id": 1, "course_id": 1})

        assert response.status_code == 409
        body = response.json()
        assert body["type"] == "DuplicateOpenEnrollmentError"
        assert body["conflicting_enrollment_id"] == 5
        assert body["conflicting_status"] == "pending"
        assert "pending" in body["error"]

    def test_create_rejects_bad_payload(self, client):
        response = client.post("/api/v1/enrollments/", json={"student_id": 0, "course_id": 1})
        assert response.status_code == 422

    def test_activate_defaults_to_document_check(self, client, enrollment_service, make_enrollment):
        enrollment_service.activate_enrollment = AsyncMock(return_value=make_enrollment(EnrollmentStatus.ACTIVE))

        response = client.post("/api/v1/enrollments/10/activate")

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        enrollment_service.activate_enrollment.assert_awaited_once_with(10, require_documents=True)

    def test_activate_twice(self, client, enrollment_service):
        enrollment_service.activate_enrollment = AsyncMock(side_effect=InvalidTransitionError(
            "active", "active", "Enrollment 10 is already active"
        ))

        response = client.post("/api/v1/enrollments/10/activate")

        assert response.status_code == 409
        assert response.json()["current_status"] == "active"

    def test_update_status(self, client, enrollment_service, make_enrollment):
        enrollment_service.update_status = AsyncMock(return_value=make_enrollment(EnrollmentStatus.CANCELLED))

        response = client.patch("/api/v1/enrollments/10/status", json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        enrollment_service.update_status.assert_awaited_once_with(10, "cancelled")

    def test_enrollment_documents(self, client, enrollment_service, make_enrollment):
        enrollment_service.get_enrollment = AsyncMock(return_value=make_enrollment())
        enrollment_service.document_service.get_document_status = AsyncMock(return_value=[
            {"document_type_id": 1, "document_type_name": "RG", "document_id": None,
             "status": "not_submitted", "is_approved": False},
        ])

        response = client.get("/api/v1/enrollments/10/documents")

        assert response.status_code == 200
        assert response.json()["all_approved"] is False


class TestContractRoutes:
    def test_accept_moves_enrollment_on(self, client, enrollment_service, make_contract, make_enrollment):
        contract = make_contract()
        contract.accept()
        enrollment_service.accept_contract = AsyncMock(
            return_value=(contract, make_enrollment(EnrollmentStatus.PENDING))
        )

        response = client.post("/api/v1/contracts/100/accept", json={"student_id": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["contract"]["status"] == "accepted"
        assert body["contract"]["period"] == "1/2026"
        assert body["enrollment"]["status"] == "pending"
        enrollment_service.accept_contract.assert_awaited_once_with(100, 1)

    def test_accept_for_cancelled_enrollment_keeps_contract_unsigned(
        self, client, mock_db, make_contract, make_enrollment
    ):
        contract = make_contract()
        service = EnrollmentService(db=mock_db)
        service.contract_service.get = AsyncMock(return_value=contract)
        service.get_enrollment = AsyncMock(return_value=make_enrollment(EnrollmentStatus.CANCELLED))
        app.dependency_overrides[get_enrollment_service] = lambda: service

        response = client.post("/api/v1/contracts/100/accept", json={"student_id": 1})

        assert response.status_code == 409
        assert response.json()["current_status"] == "cancelled"
        assert contract.accepted_at is None
        mock_db.commit.assert_not_awaited()


class TestReenrollmentRoutes:
    def test_process_global(self, client, reenrollment_service):
        reenrollment_service.process_global_reenrollment = AsyncMock(return_value={
            "semester": 2,
            "year": 2026,
            "total_eligible": 3,
            "total_students": 2,
            "affected_enrollment_ids": [1, 3],
            "failures": [{"enrollment_id": 2, "error": "Enrollment 2 is cancelled"}],
            "skipped_enrollment_ids": [],
            "interrupted": None,
        })

        response = client.post("/api/v1/reenrollment/process-global", json={
            "semester": 2, "year": 2026, "admin_user_id": 1, "admin_password": "secret",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["totalStudents"] == 2
        assert body["data"]["affectedEnrollmentIds"] == [1, 3]

    def test_wrong_password(self, client, reenrollment_service):
        reenrollment_service.process_global_reenrollment = AsyncMock(side_effect=AuthenticationFailedError())

        response = client.post("/api/v1/reenrollment/process-global", json={
            "semester": 2, "year": 2026, "admin_user_id": 1, "admin_password": "wrong",
        })

        assert response.status_code == 401
        assert response.json()["error"] == "Incorrect password"

    def test_invalid_semester(self, client, reenrollment_service):
        reenrollment_service.process_global_reenrollment = AsyncMock()

        response = client.post("/api/v1/reenrollment/process-global", json={
            "semester": 3, "year": 2026, "admin_user_id": 1, "admin_password": "secret",
        })

        assert response.status_code == 422
        reenrollment_service.process_global_reenrollment.assert_not_awaited()


def test_health(client):
    response = client.get("/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_database_down(client, monkeypatch):
    async def unreachable():
        return {"status": "unhealthy", "database": "PostgreSQL", "error": "OSError"}

    monkeypatch.setattr("secretaria.routers.health.check_database", unreachable)

    response = client.get("/health/db")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
