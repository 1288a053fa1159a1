# secretaria/schemas/enrollment_schemas.py
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class EnrollmentCreate(BaseModel):
    student_id: int = Field(..., ge=1)
    course_id: int = Field(..., ge=1)
    enrollment_date: Optional[date] = None
    current_semester: Optional[int] = Field(None, ge=1)
    require_contract: Optional[bool] = None


class ActivateRequest(BaseModel):
    require_documents: bool = True


class StatusUpdate(BaseModel):
    status: str


class CurrentSemesterUpdate(BaseModel):
    current_semester: int = Field(..., ge=1)


class ContractAccept(BaseModel):
    student_id: int = Field(..., ge=1)


class DocumentReview(BaseModel):
    reviewer_id: int = Field(..., ge=1)
    observations: Optional[str] = None


class ReenrollmentPeriod(BaseModel):
    semester: int = Field(..., ge=1, le=2)
    year: int = Field(..., ge=1000, le=9999)


class GlobalReenrollmentRequest(ReenrollmentPeriod):
    admin_user_id: int = Field(..., ge=1)
    admin_password: str = Field(..., min_length=1)
