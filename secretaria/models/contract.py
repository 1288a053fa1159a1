# secretaria/models/contract.py
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship
from .base import Base

class Contract(Base):
    __tablename__ = "contracts"

    # Foreign Keys
    enrollment_id = Column(Integer, ForeignKey("enrollments.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)

    # Period the contract covers
    semester = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    accepted_at = Column(DateTime(timezone=True), nullable=True)
    file_name = Column(String(255), nullable=True)

    # Relationships
    enrollment = relationship("Enrollment", back_populates="contracts")

    __table_args__ = (
        Index(
            "uq_contracts_enrollment_period",
            "enrollment_id", "semester", "year",
            unique=True,
            postgresql_where=text("is_deleted = false"),
        ),
        CheckConstraint("semester IN (1, 2)", name="ck_contracts_semester"),
    )

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None

    def accept(self):
        self.accepted_at = datetime.now(timezone.utc)

    @property
    def period_label(self) -> str:
        return f"{self.semester}/{self.year}"
