# secretaria/models/enrollment.py
"""Enrollment of a student in a course-track and its status lifecycle.

``status`` is read-only on instances. It changes only through the named
transition methods below, each of which checks ``ALLOWED_TRANSITIONS``
before touching the row. The single-open-enrollment rule needs a database
read, so it is checked by ``EnrollmentService`` before it calls these
methods, and backed by the ``uq_enrollments_student_open`` partial index.
"""
import enum
from datetime import date
from typing import Optional

from sqlalchemy import Column, String, Integer, Date, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from .base import Base
from ..core.exceptions import InvalidTransitionError


class EnrollmentStatus(str, enum.Enum):
    CONTRACT = "contract"
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    REENROLLMENT = "reenrollment"
    COMPLETED = "completed"


# A student may hold at most one enrollment in these statuses
OPEN_STATUSES = frozenset({
    EnrollmentStatus.ACTIVE,
    EnrollmentStatus.PENDING,
    EnrollmentStatus.CONTRACT,
})

TERMINAL_STATUSES = frozenset({EnrollmentStatus.CANCELLED, EnrollmentStatus.COMPLETED})

ALLOWED_TRANSITIONS = {
    EnrollmentStatus.CONTRACT: frozenset({
        EnrollmentStatus.PENDING,
        EnrollmentStatus.ACTIVE,
        EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.PENDING: frozenset({
        EnrollmentStatus.ACTIVE,
        EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.ACTIVE: frozenset({
        EnrollmentStatus.REENROLLMENT,
        EnrollmentStatus.COMPLETED,
        EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.REENROLLMENT: frozenset({
        EnrollmentStatus.ACTIVE,
        EnrollmentStatus.CONTRACT,
        EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.CANCELLED: frozenset(),
    EnrollmentStatus.COMPLETED: frozenset(),
}

_OPEN_STATUS_SQL = ", ".join(f"'{s.value}'" for s in sorted(OPEN_STATUSES, key=lambda s: s.value))
_ALL_STATUS_SQL = ", ".join(f"'{s.value}'" for s in EnrollmentStatus)


class Enrollment(Base):
    __tablename__ = "enrollments"

    # Foreign Keys
    student_id = Column(Integer, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Enrollment Details
    _status = Column("status", String(20), nullable=False, default=EnrollmentStatus.PENDING.value, index=True)
    enrollment_date = Column(Date, nullable=False)
    current_semester = Column(Integer, nullable=True)

    # Academic period the enrollment is currently carried in
    period_semester = Column(Integer, nullable=True)
    period_year = Column(Integer, nullable=True)

    version_id = Column(Integer, nullable=False)

    # Relationships
    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
    contracts = relationship("Contract", back_populates="enrollment")

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index(
            "uq_enrollments_student_open",
            "student_id",
            unique=True,
            postgresql_where=text(f"status IN ({_OPEN_STATUS_SQL}) AND is_deleted = false"),
        ),
        CheckConstraint(f"status IN ({_ALL_STATUS_SQL})", name="ck_enrollments_status"),
        CheckConstraint("current_semester IS NULL OR current_semester >= 1", name="ck_enrollments_current_semester"),
        CheckConstraint("period_semester IS NULL OR period_semester IN (1, 2)", name="ck_enrollments_period_semester"),
    )

    @classmethod
    def create_new(
        cls,
        student_id: int,
        course_id: int,
        enrollment_date: date,
        initial_status: EnrollmentStatus,
        current_semester: Optional[int] = None,
        period_semester: Optional[int] = None,
        period_year: Optional[int] = None,
    ) -> "Enrollment":
        if initial_status not in (EnrollmentStatus.CONTRACT, EnrollmentStatus.PENDING):
            raise InvalidTransitionError(
                "none", initial_status.value,
                "New enrollments start in 'contract' or 'pending'",
            )
        enrollment = cls(
            student_id=student_id,
            course_id=course_id,
            enrollment_date=enrollment_date,
            current_semester=current_semester,
            period_semester=period_semester,
            period_year=period_year,
        )
        enrollment._status = initial_status.value
        return enrollment

    @hybrid_property
    def status(self) -> EnrollmentStatus:
        return EnrollmentStatus(self._status)

    @status.expression
    def status(cls):
        return cls._status

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, target: EnrollmentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def ensure_transition(self, target: EnrollmentStatus):
        """Raise InvalidTransitionError unless ``target`` is reachable from the current status."""
        current = self.status
        if self.can_transition_to(target):
            return
        if current == target:
            message = f"Enrollment {self.id} is already {current.value}"
        elif current in TERMINAL_STATUSES:
            message = f"Enrollment {self.id} is {current.value}; no further status changes are allowed"
        else:
            message = f"Enrollment {self.id} cannot move from '{current.value}' to '{target.value}'"
        raise InvalidTransitionError(current.value, target.value, message)

    def _move_to(self, target: EnrollmentStatus):
        self.ensure_transition(target)
        self._status = target.value

    # Transitions

    def mark_contract_accepted(self):
        self._move_to(EnrollmentStatus.PENDING)

    def activate(self):
        self._move_to(EnrollmentStatus.ACTIVE)

    def cancel(self):
        self._move_to(EnrollmentStatus.CANCELLED)

    def complete(self):
        self._move_to(EnrollmentStatus.COMPLETED)

    def begin_reenrollment(self):
        self._move_to(EnrollmentStatus.REENROLLMENT)

    def resolve_reenrollment(self, contract_accepted: bool):
        if self.status != EnrollmentStatus.REENROLLMENT:
            raise InvalidTransitionError(
                self.status.value,
                EnrollmentStatus.ACTIVE.value if contract_accepted else EnrollmentStatus.CONTRACT.value,
                f"Enrollment {self.id} is not in reenrollment",
            )
        self._move_to(EnrollmentStatus.ACTIVE if contract_accepted else EnrollmentStatus.CONTRACT)

    def advance_semester(self, total_semesters: Optional[int]) -> EnrollmentStatus:
        """Move to the next semester, or complete the enrollment once the last one is done."""
        if self.status != EnrollmentStatus.ACTIVE:
            raise InvalidTransitionError(
                self.status.value,
                EnrollmentStatus.ACTIVE.value,
                f"Only active enrollments can advance semester (enrollment {self.id} is {self.status.value})",
            )
        if (
            total_semesters is not None
            and self.current_semester is not None
            and self.current_semester >= total_semesters
        ):
            self.complete()
        elif self.current_semester is None:
            self.current_semester = 1
        else:
            self.current_semester += 1
        return self.status

    def set_period(self, semester: int, year: int):
        self.period_semester = semester
        self.period_year = year

    def in_period(self, semester: int, year: int) -> bool:
        return self.period_semester == semester and self.period_year == year

    def __repr__(self):
        return f"<Enrollment id={self.id} student={self.student_id} course={self.course_id} status={self._status}>"
