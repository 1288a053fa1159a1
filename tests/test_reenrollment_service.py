"""Unit tests for the global reenrollment batch."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from secretaria.core.exceptions import (
    AuthenticationFailedError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from secretaria.models.enrollment import EnrollmentStatus
from secretaria.services.enrollment_service import EnrollmentService
from secretaria.services.reenrollment_service import ReenrollmentService


@pytest.fixture
def enrollment_service():
    service = MagicMock()
    service.list_reenrollment_candidates = AsyncMock(return_value=[1, 2, 3])
    service.reenroll_enrollment = AsyncMock()
    return service


@pytest.fixture
def credential_service():
    service = MagicMock()
    service.verify_password = AsyncMock(return_value=True)
    return service


@pytest.fixture
def reenrollment_service(mock_db, enrollment_service, credential_service):
    return ReenrollmentService(
        db=mock_db,
        enrollment_service=enrollment_service,
        credential_service=credential_service,
        item_timeout=5,
        batch_timeout=60,
    )


@pytest.mark.asyncio
async def test_wrong_password_processes_nothing(reenrollment_service, enrollment_service, credential_service):
    credential_service.verify_password.return_value = False

    with pytest.raises(AuthenticationFailedError) as exc_info:
        await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="wrong")

    assert exc_info.value.status_code == 401
    enrollment_service.list_reenrollment_candidates.assert_not_awaited()
    enrollment_service.reenroll_enrollment.assert_not_awaited()


@pytest.mark.asyncio
async def test_non_admin_is_refused(reenrollment_service, enrollment_service, credential_service):
    credential_service.verify_password.side_effect = PermissionDeniedError("Only administrators can run this operation")

    with pytest.raises(PermissionDeniedError):
        await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=7, admin_password="secret")

    enrollment_service.reenroll_enrollment.assert_not_awaited()


@pytest.mark.asyncio
async def test_reenrolls_every_eligible_enrollment(reenrollment_service, enrollment_service, credential_service):
    result = await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    credential_service.verify_password.assert_awaited_once_with(1, "secret")
    assert result["total_eligible"] == 3
    assert result["total_students"] == 3
    assert result["affected_enrollment_ids"] == [1, 2, 3]
    assert result["failures"] == []
    assert result["skipped_enrollment_ids"] == []
    assert result["interrupted"] is None
    assert enrollment_service.reenroll_enrollment.await_count == 3
    enrollment_service.reenroll_enrollment.assert_any_await(2, 2, 2026)


@pytest.mark.asyncio
async def test_nothing_eligible(reenrollment_service, enrollment_service):
    enrollment_service.list_reenrollment_candidates.return_value = []

    result = await reenrollment_service.process_global_reenrollment(1, 2027, admin_user_id=1, admin_password="secret")

    assert result["total_students"] == 0
    assert result["total_eligible"] == 0


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_batch(reenrollment_service, enrollment_service, mock_db):
    async def reenroll(enrollment_id, semester, year):
        if enrollment_id == 2:
            raise InvalidTransitionError("cancelled", "reenrollment", "Enrollment 2 is cancelled")

    enrollment_service.reenroll_enrollment.side_effect = reenroll

    result = await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    assert result["total_students"] == 2
    assert result["affected_enrollment_ids"] == [1, 3]
    assert result["failures"] == [{"enrollment_id": 2, "error": "Enrollment 2 is cancelled"}]
    mock_db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_unexpected_error_is_reported(reenrollment_service, enrollment_service, mock_db):
    enrollment_service.reenroll_enrollment.side_effect = [None, RuntimeError("connection reset"), None]

    result = await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    assert result["affected_enrollment_ids"] == [1, 3]
    assert result["failures"][0]["enrollment_id"] == 2
    assert "connection reset" in result["failures"][0]["error"]


@pytest.mark.asyncio
async def test_slow_item_times_out(mock_db, enrollment_service, credential_service):
    async def reenroll(enrollment_id, semester, year):
        if enrollment_id == 1:
            await asyncio.sleep(1)

    enrollment_service.reenroll_enrollment.side_effect = reenroll
    service = ReenrollmentService(
        db=mock_db,
        enrollment_service=enrollment_service,
        credential_service=credential_service,
        item_timeout=0.05,
        batch_timeout=60,
    )

    result = await service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    assert result["affected_enrollment_ids"] == [2, 3]
    assert result["failures"][0]["enrollment_id"] == 1
    assert "Timed out" in result["failures"][0]["error"]
    mock_db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_batch_deadline_skips_the_rest(mock_db, enrollment_service, credential_service):
    async def reenroll(enrollment_id, semester, year):
        await asyncio.sleep(0.5)

    enrollment_service.reenroll_enrollment.side_effect = reenroll
    service = ReenrollmentService(
        db=mock_db,
        enrollment_service=enrollment_service,
        credential_service=credential_service,
        item_timeout=5,
        batch_timeout=0.05,
    )

    result = await service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    failed_ids = [f["enrollment_id"] for f in result["failures"]]
    assert result["interrupted"] == "timeout"
    assert result["affected_enrollment_ids"] == []
    assert failed_ids[0] == 1
    assert result["skipped_enrollment_ids"]
    assert failed_ids + result["skipped_enrollment_ids"] == [1, 2, 3]


@pytest.mark.asyncio
async def test_cancel_event_stops_before_next_item(reenrollment_service, enrollment_service):
    cancel_event = asyncio.Event()

    async def reenroll(enrollment_id, semester, year):
        if enrollment_id == 1:
            cancel_event.set()

    enrollment_service.reenroll_enrollment.side_effect = reenroll

    result = await reenrollment_service.process_global_reenrollment(
        2, 2026, admin_user_id=1, admin_password="secret", cancel_event=cancel_event
    )

    assert result["interrupted"] == "cancelled"
    assert result["affected_enrollment_ids"] == [1]
    assert result["skipped_enrollment_ids"] == [2, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize("semester, year", [(3, 2026), (0, 2026), (1, 99), (2, 10000)])
async def test_invalid_period(reenrollment_service, credential_service, semester, year):
    with pytest.raises(ValidationError):
        await reenrollment_service.process_global_reenrollment(
            semester, year, admin_user_id=1, admin_password="secret"
        )

    credential_service.verify_password.assert_not_awaited()


@pytest.mark.asyncio
async def test_preview_lists_candidates_without_writing(reenrollment_service, enrollment_service, mock_db):
    result = await reenrollment_service.preview_reenrollment(2, 2026)

    assert result == {"semester": 2, "year": 2026, "total_eligible": 3, "enrollment_ids": [1, 2, 3]}
    enrollment_service.reenroll_enrollment.assert_not_awaited()
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_rollback_is_still_reported(reenrollment_service, enrollment_service, mock_db):
    enrollment_service.reenroll_enrollment.side_effect = [None, RuntimeError("contract storage down"), None]
    mock_db.rollback.side_effect = ConnectionError("connection is closed")

    result = await reenrollment_service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

    assert result["affected_enrollment_ids"] == [1, 3]
    assert result["failures"] == [{"enrollment_id": 2, "error": "contract storage down"}]
    assert enrollment_service.reenroll_enrollment.await_count == 3
    mock_db.rollback.assert_awaited_once()


class TestBatchWithEnrollmentService:
    """The batch driving a real EnrollmentService over a mocked session."""

    @pytest.fixture
    def enrollments(self, make_enrollment):
        return {
            i: make_enrollment(EnrollmentStatus.ACTIVE, enrollment_id=i, student_id=i, period=(1, 2026))
            for i in (1, 2, 3)
        }

    @pytest.fixture
    def lifecycle(self, mock_db, enrollments, make_contract):
        contract_service = MagicMock()

        async def request_new_contract(enrollment, semester, year):
            if enrollment.id == 2:
                raise RuntimeError("contract storage down")
            return make_contract(
                contract_id=100 + enrollment.id,
                enrollment_id=enrollment.id,
                student_id=enrollment.student_id,
                semester=semester,
                year=year,
            )

        contract_service.request_new_contract = AsyncMock(side_effect=request_new_contract)
        service = EnrollmentService(db=mock_db, document_service=MagicMock(), contract_service=contract_service)
        service.get_enrollment = AsyncMock(side_effect=lambda enrollment_id, for_update=False: enrollments[enrollment_id])
        service.lock_student = AsyncMock()
        service.get_open_by_student = AsyncMock(return_value=None)
        service.list_reenrollment_candidates = AsyncMock(return_value=[1, 2, 3])
        return service

    @pytest.mark.asyncio
    async def test_half_applied_item_is_rolled_back(self, mock_db, lifecycle, enrollments, credential_service):
        committed = []

        async def rollback():
            # The session reloads the row as it was before the failed item
            enrollments[2]._status = EnrollmentStatus.ACTIVE.value

        async def commit():
            committed.append({i: e.status for i, e in enrollments.items()})

        mock_db.rollback.side_effect = rollback
        mock_db.commit.side_effect = commit
        service = ReenrollmentService(
            db=mock_db,
            enrollment_service=lifecycle,
            credential_service=credential_service,
            item_timeout=5,
            batch_timeout=60,
        )

        result = await service.process_global_reenrollment(2, 2026, admin_user_id=1, admin_password="secret")

        assert result["affected_enrollment_ids"] == [1, 3]
        assert result["failures"] == [{"enrollment_id": 2, "error": "contract storage down"}]
        mock_db.rollback.assert_awaited_once()
        assert len(committed) == 2
        assert all(snapshot[2] != EnrollmentStatus.REENROLLMENT for snapshot in committed)
        assert committed[-1][3] == EnrollmentStatus.CONTRACT
        assert enrollments[2].status == EnrollmentStatus.ACTIVE
        assert enrollments[2].in_period(1, 2026)
        for i in (1, 3):
            assert enrollments[i].status == EnrollmentStatus.CONTRACT
            assert enrollments[i].in_period(2, 2026)
