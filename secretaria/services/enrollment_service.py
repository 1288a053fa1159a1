# secretaria/services/enrollment_service.py
"""Enrollment lifecycle manager.

This service is the only writer of ``Enrollment.status``. Every transition
whose target is an open status (active, pending, contract) locks the
student's row and re-checks that no other open enrollment exists before the
write commits.
"""
from typing import Callable, List, Optional, Tuple
from datetime import date
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from .base_service import BaseService
from .contract_service import ContractService
from .document_service import DocumentService
from ..core.config import settings
from ..core.exceptions import (
    NotFoundError,
    ValidationError,
    DuplicateOpenEnrollmentError,
    InvalidTransitionError,
    TransitionGuardError,
    ConcurrentModificationError,
)
from ..models.contract import Contract
from ..models.course import Course
from ..models.enrollment import Enrollment, EnrollmentStatus, OPEN_STATUSES
from ..models.student import Student
from ..utils.academic_period import current_period
from ..utils.pagination import PageParams

logger = logging.getLogger(__name__)

_OPEN_STATUS_VALUES = [s.value for s in OPEN_STATUSES]


class EnrollmentService(BaseService[Enrollment]):
    def __init__(
        self,
        db: AsyncSession,
        document_service: Optional[DocumentService] = None,
        contract_service: Optional[ContractService] = None,
        require_contract: Optional[bool] = None,
    ):
        super().__init__(Enrollment, db)
        self.document_service = document_service or DocumentService(db)
        self.contract_service = contract_service or ContractService(db)
        self.require_contract = (
            settings.enrollment_requires_contract if require_contract is None else require_contract
        )

    # Queries

    async def get_enrollment(self, enrollment_id: int, for_update: bool = False) -> Enrollment:
        stmt = select(self.model).where(
            self.model.id == enrollment_id,
            self.model.is_deleted == False
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    async def get_by_student(self, student_id: int) -> List[Enrollment]:
        """Get all enrollments for a specific student"""
        stmt = select(self.model).where(
            self.model.student_id == student_id,
            self.model.is_deleted == False
        ).order_by(self.model.enrollment_date.desc(), self.model.id.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_open_by_student(self, student_id: int, exclude_id: Optional[int] = None) -> Optional[Enrollment]:
        """The student's active, pending or contract enrollment, if any"""
        stmt = select(self.model).where(
            self.model.student_id == student_id,
            self.model.status.in_(_OPEN_STATUS_VALUES),
            self.model.is_deleted == False
        )
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def get_awaiting_contract_by_student(self, student_id: int) -> Optional[Enrollment]:
        """Most recent enrollment waiting for the student to sign a contract"""
        stmt = select(self.model).where(
            self.model.student_id == student_id,
            self.model.status.in_([EnrollmentStatus.CONTRACT.value, EnrollmentStatus.REENROLLMENT.value]),
            self.model.is_deleted == False
        ).order_by(self.model.created_at.desc(), self.model.id.desc()).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_by_student(self, student_id: int, for_update: bool = False) -> Optional[Enrollment]:
        stmt = select(self.model).where(
            self.model.student_id == student_id,
            self.model.status == EnrollmentStatus.PENDING.value,
            self.model.is_deleted == False
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def get_enrollments_paginated(
        self,
        params: Optional[PageParams] = None,
        student_id: Optional[int] = None,
        course_id: Optional[int] = None,
        status: Optional[str] = None
    ) -> dict:
        """Get paginated enrollments"""
        filters = {"student_id": student_id, "course_id": course_id}
        if status is not None:
            filters["_status"] = self.parse_status(status).value
        return await self.get_paginated(params or PageParams(), order_by="id", **filters)

    async def list_reenrollment_candidates(self, semester: int, year: int) -> List[int]:
        """Ids of active enrollments not yet carried into the given period"""
        stmt = select(self.model.id).where(
            self.model.status == EnrollmentStatus.ACTIVE.value,
            self.model.is_deleted == False,
            or_(
                self.model.period_semester.is_(None),
                self.model.period_year.is_(None),
                self.model.period_semester != semester,
                self.model.period_year != year,
            )
        ).order_by(self.model.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_course(self, course_id: int) -> Course:
        stmt = select(Course).where(Course.id == course_id, Course.is_deleted == False)
        result = await self.db.execute(stmt)
        course = result.scalar_one_or_none()
        if not course:
            raise NotFoundError("Course", course_id)
        return course

    async def lock_student(self, student_id: int):
        """Take a row lock on the student so open-enrollment checks for them run one at a time"""
        stmt = select(Student.id).where(
            Student.id == student_id,
            Student.is_deleted == False
        ).with_for_update()
        result = await self.db.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Student", student_id)

    # Validation and invariant

    @staticmethod
    def parse_status(value: str) -> EnrollmentStatus:
        try:
            return EnrollmentStatus(str(value).lower())
        except ValueError:
            accepted = ", ".join(s.value for s in EnrollmentStatus)
            raise ValidationError(f"Invalid status '{value}'. Accepted values: {accepted}", field="status")

    @staticmethod
    def validate_enrollment_date(enrollment_date: date, today: Optional[date] = None):
        today = today or date.today()
        if enrollment_date > today:
            raise ValidationError("enrollment_date cannot be in the future", field="enrollment_date")

    @staticmethod
    def validate_current_semester(current_semester: Optional[int], course: Course):
        if current_semester is None:
            return
        if current_semester < 1:
            raise ValidationError("current_semester must be a positive integer", field="current_semester")
        total = course.total_semesters
        if total is not None and current_semester > total:
            raise ValidationError(
                f"current_semester must be between 1 and {total} for course {course.id}",
                field="current_semester"
            )

    async def ensure_no_other_open_enrollment(self, student_id: int, exclude_id: Optional[int] = None):
        existing = await self.get_open_by_student(student_id, exclude_id=exclude_id)
        if existing:
            logger.warning(
                f"Student {student_id} already has {existing.status.value} enrollment {existing.id}"
            )
            raise DuplicateOpenEnrollmentError(
                student_id,
                conflicting_enrollment_id=existing.id,
                conflicting_status=existing.status.value,
                course_id=existing.course_id,
            )

    # Writes

    async def _commit(self, enrollment: Enrollment):
        enrollment_id, student_id = enrollment.id, enrollment.student_id
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Open enrollment index rejected write for student {student_id}: {e.orig}")
            raise DuplicateOpenEnrollmentError(student_id)
        except StaleDataError:
            await self.db.rollback()
            raise ConcurrentModificationError("Enrollment", enrollment_id)
        await self.db.refresh(enrollment)

    async def _transition(
        self,
        enrollment: Enrollment,
        target: EnrollmentStatus,
        apply: Callable[[], None],
        commit: bool = True,
    ) -> Enrollment:
        enrollment.ensure_transition(target)
        if target in OPEN_STATUSES:
            await self.lock_student(enrollment.student_id)
            await self.ensure_no_other_open_enrollment(enrollment.student_id, exclude_id=enrollment.id)

        previous = enrollment.status
        apply()
        if commit:
            await self._commit(enrollment)
        logger.info(f"Enrollment {enrollment.id}: {previous.value} -> {enrollment.status.value}")
        return enrollment

    async def create_enrollment(
        self,
        student_id: int,
        course_id: int,
        enrollment_date: Optional[date] = None,
        current_semester: Optional[int] = None,
        require_contract: Optional[bool] = None,
    ) -> Enrollment:
        """Create new enrollment in 'contract' or 'pending' depending on the workflow"""
        logger.info(f"Creating enrollment - student_id: {student_id}, course_id: {course_id}")
        today = date.today()
        enrollment_date = enrollment_date or today
        self.validate_enrollment_date(enrollment_date, today)

        course = await self.get_course(course_id)
        self.validate_current_semester(current_semester, course)

        await self.lock_student(student_id)
        await self.ensure_no_other_open_enrollment(student_id)

        if require_contract is None:
            require_contract = self.require_contract
        initial_status = EnrollmentStatus.CONTRACT if require_contract else EnrollmentStatus.PENDING
        semester, year = current_period(today)

        enrollment = Enrollment.create_new(
            student_id=student_id,
            course_id=course_id,
            enrollment_date=enrollment_date,
            initial_status=initial_status,
            current_semester=current_semester,
            period_semester=semester,
            period_year=year,
        )
        self.db.add(enrollment)
        try:
            await self.db.flush()
            if require_contract:
                await self.contract_service.request_new_contract(enrollment, semester, year)
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateOpenEnrollmentError(student_id)
        await self._commit(enrollment)

        logger.info(f"Enrollment {enrollment.id} created with status {initial_status.value}")
        return enrollment

    async def accept_contract(self, contract_id: int, student_id: int) -> Tuple[Contract, Enrollment]:
        """Student signs a contract: contract -> pending, or straight to active
        when the mandatory documents are already approved.

        Every check runs before anything is written; the contract's
        acceptance and the status change commit together.
        """
        contract = await self.contract_service.get_acceptable_contract(contract_id, student_id)
        enrollment = await self.get_enrollment(contract.enrollment_id, for_update=True)
        enrollment.ensure_transition(EnrollmentStatus.PENDING)

        if (
            enrollment.period_semester is not None
            and enrollment.period_year is not None
            and not enrollment.in_period(contract.semester, contract.year)
        ):
            raise TransitionGuardError(
                "contract_accepted",
                f"Contract {contract.id} covers {contract.period_label}, but enrollment {enrollment.id} "
                f"is awaiting the contract for {enrollment.period_semester}/{enrollment.period_year}"
            )

        def apply():
            contract.accept()
            enrollment.mark_contract_accepted()

        await self._transition(enrollment, EnrollmentStatus.PENDING, apply)
        logger.info(f"Contract {contract.id} accepted by student {student_id}")

        if await self.document_service.all_mandatory_documents_approved(enrollment.student_id):
            await self._transition(enrollment, EnrollmentStatus.ACTIVE, enrollment.activate)
        return contract, enrollment

    async def handle_contract_accepted(self, enrollment_id: int) -> Enrollment:
        """contract -> pending once the period's contract is accepted.

        If the student's mandatory documents are already approved (usual on
        reenrollment) the enrollment continues straight to active.
        """
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        enrollment.ensure_transition(EnrollmentStatus.PENDING)

        semester, year = enrollment.period_semester, enrollment.period_year
        if semester is None or year is None:
            semester, year = current_period()
        if not await self.contract_service.has_accepted_contract(enrollment.id, semester, year):
            raise TransitionGuardError(
                "contract_accepted",
                f"Enrollment {enrollment.id} has no accepted contract for {semester}/{year}"
            )

        await self._transition(enrollment, EnrollmentStatus.PENDING, enrollment.mark_contract_accepted)

        if await self.document_service.all_mandatory_documents_approved(enrollment.student_id):
            await self._transition(enrollment, EnrollmentStatus.ACTIVE, enrollment.activate)
        return enrollment

    async def handle_documents_approved(self, student_id: int) -> Optional[Enrollment]:
        """pending -> active when the student's mandatory documents are all approved.

        Returns None when the student has no pending enrollment.
        """
        enrollment = await self.get_pending_by_student(student_id, for_update=True)
        if not enrollment:
            return None
        if not await self.document_service.all_mandatory_documents_approved(student_id):
            logger.info(f"Enrollment {enrollment.id} stays pending: documents incomplete")
            return enrollment
        return await self._transition(enrollment, EnrollmentStatus.ACTIVE, enrollment.activate)

    async def activate_enrollment(self, enrollment_id: int, require_documents: bool = True) -> Enrollment:
        """Activate an enrollment.

        ``require_documents=False`` is the administrative override: it skips
        the document check and may activate an enrollment still awaiting its
        contract.
        """
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        enrollment.ensure_transition(EnrollmentStatus.ACTIVE)

        if require_documents:
            if enrollment.status == EnrollmentStatus.CONTRACT:
                raise TransitionGuardError(
                    "contract_accepted",
                    f"Enrollment {enrollment.id} is awaiting contract acceptance"
                )
            if not await self.document_service.all_mandatory_documents_approved(enrollment.student_id):
                logger.warning(f"Cannot activate enrollment {enrollment.id}: documents incomplete")
                raise TransitionGuardError(
                    "documents_approved",
                    f"Student {enrollment.student_id} does not have all mandatory documents approved"
                )

        return await self._transition(enrollment, EnrollmentStatus.ACTIVE, enrollment.activate)

    async def cancel_enrollment(self, enrollment_id: int) -> Enrollment:
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        return await self._transition(enrollment, EnrollmentStatus.CANCELLED, enrollment.cancel)

    async def complete_enrollment(self, enrollment_id: int) -> Enrollment:
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        return await self._transition(enrollment, EnrollmentStatus.COMPLETED, enrollment.complete)

    async def advance_semester(self, enrollment_id: int) -> Enrollment:
        """Move an active enrollment to its next semester, completing it after the last one"""
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        course = await self.get_course(enrollment.course_id)

        previous_semester = enrollment.current_semester
        enrollment.advance_semester(course.total_semesters)
        await self._commit(enrollment)

        if enrollment.status == EnrollmentStatus.COMPLETED:
            logger.info(f"Enrollment {enrollment.id} completed after semester {previous_semester}")
        else:
            logger.info(f"Enrollment {enrollment.id} advanced to semester {enrollment.current_semester}")
        return enrollment

    async def reenroll_enrollment(self, enrollment_id: int, semester: int, year: int) -> Enrollment:
        """Carry an active enrollment into a new period.

        active -> reenrollment, a contract is requested for the period, then
        the enrollment resolves to active when that contract is already
        accepted, otherwise to contract.
        """
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise InvalidTransitionError(
                enrollment.status.value,
                EnrollmentStatus.REENROLLMENT.value,
                f"Only active enrollments can be reenrolled (enrollment {enrollment.id} is {enrollment.status.value})"
            )

        await self._transition(enrollment, EnrollmentStatus.REENROLLMENT, enrollment.begin_reenrollment, commit=False)
        await self.db.flush()

        contract = await self.contract_service.request_new_contract(enrollment, semester, year)
        target = EnrollmentStatus.ACTIVE if contract.is_accepted else EnrollmentStatus.CONTRACT

        def resolve():
            enrollment.resolve_reenrollment(contract.is_accepted)
            enrollment.set_period(semester, year)

        return await self._transition(enrollment, target, resolve)

    async def update_status(self, enrollment_id: int, status: str) -> Enrollment:
        """Administrative status change, routed through the named transitions"""
        target = self.parse_status(status)
        logger.info(f"Status change requested for enrollment {enrollment_id}: {target.value}")

        if target == EnrollmentStatus.ACTIVE:
            return await self.activate_enrollment(enrollment_id, require_documents=False)
        if target == EnrollmentStatus.CANCELLED:
            return await self.cancel_enrollment(enrollment_id)
        if target == EnrollmentStatus.PENDING:
            return await self.handle_contract_accepted(enrollment_id)
        if target == EnrollmentStatus.COMPLETED:
            return await self.complete_enrollment(enrollment_id)

        enrollment = await self.get_enrollment(enrollment_id)
        raise InvalidTransitionError(
            enrollment.status.value,
            target.value,
            f"Status '{target.value}' is only set by the reenrollment process"
        )

    async def update_current_semester(self, enrollment_id: int, current_semester: int) -> Enrollment:
        enrollment = await self.get_enrollment(enrollment_id, for_update=True)
        if enrollment.is_terminal:
            raise ValidationError(
                f"Enrollment {enrollment.id} is {enrollment.status.value}; its semester can no longer change",
                field="current_semester"
            )
        course = await self.get_course(enrollment.course_id)
        if current_semester is None:
            raise ValidationError("current_semester is required", field="current_semester")
        self.validate_current_semester(current_semester, course)

        enrollment.current_semester = current_semester
        await self._commit(enrollment)
        logger.info(f"Enrollment {enrollment.id} semester set to {current_semester}")
        return enrollment

    async def delete_enrollment(self, enrollment_id: int):
        """Soft delete, keeping the row for audit"""
        if not await self.soft_delete(enrollment_id):
            raise NotFoundError("Enrollment", enrollment_id)
        logger.info(f"Enrollment {enrollment_id} deleted")
