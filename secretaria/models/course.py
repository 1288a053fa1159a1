# secretaria/models/course.py
import enum
from typing import Optional
from sqlalchemy import Column, String, Integer, Text, CheckConstraint
from sqlalchemy.orm import relationship
from .base import Base

class DurationType(str, enum.Enum):
    SEMESTERS = "Semestres"
    YEARS = "Anos"
    MONTHS = "Meses"
    DAYS = "Dias"
    HOURS = "Horas"

class Course(Base):
    __tablename__ = "courses"

    name = Column(String(200), nullable=False)
    description = Column(Text)
    duration = Column(Integer, nullable=False, default=1)
    duration_type = Column(String(50), nullable=False, default=DurationType.SEMESTERS.value)
    course_type = Column(String(50), nullable=False, default="Superior")

    # Relationships
    enrollments = relationship("Enrollment", back_populates="course")

    __table_args__ = (
        CheckConstraint("duration >= 1", name="ck_courses_duration"),
    )

    @property
    def total_semesters(self) -> Optional[int]:
        """Course length in semesters, or None when the duration is not semester based."""
        if self.duration_type == DurationType.SEMESTERS.value:
            return self.duration
        if self.duration_type == DurationType.YEARS.value:
            return self.duration * 2
        return None
