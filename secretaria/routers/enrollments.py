# secretaria/routers/enrollments.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..models.enrollment import Enrollment
from ..schemas.enrollment_schemas import (
    EnrollmentCreate,
    ActivateRequest,
    StatusUpdate,
    CurrentSemesterUpdate,
)
from ..services.enrollment_service import EnrollmentService
from ..utils.pagination import PageParams, page_params

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments"])


def get_enrollment_service(db: AsyncSession = Depends(get_db)) -> EnrollmentService:
    return EnrollmentService(db)


def format_enrollment(enrollment: Enrollment) -> dict:
    return {
        "id": enrollment.id,
        "student_id": enrollment.student_id,
        "course_id": enrollment.course_id,
        "status": enrollment.status.value,
        "enrollment_date": enrollment.enrollment_date.isoformat() if enrollment.enrollment_date else None,
        "current_semester": enrollment.current_semester,
        "period_semester": enrollment.period_semester,
        "period_year": enrollment.period_year,
        "created_at": enrollment.created_at.isoformat() if enrollment.created_at else None,
        "updated_at": enrollment.updated_at.isoformat() if enrollment.updated_at else None,
    }


@router.get("/", response_model=dict)
async def get_enrollments(
    params: PageParams = Depends(page_params),
    student_id: Optional[int] = Query(None),
    course_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Get paginated enrollments with filtering"""
    result = await service.get_enrollments_paginated(
        params, student_id=student_id, course_id=course_id, status=status
    )
    result["items"] = [format_enrollment(e) for e in result["items"]]
    return result


@router.get("/student/{student_id}", response_model=dict)
async def get_student_enrollments(
    student_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollments = await service.get_by_student(student_id)
    return {"student_id": student_id, "items": [format_enrollment(e) for e in enrollments]}


@router.get("/student/{student_id}/awaiting-contract", response_model=dict)
async def get_student_enrollment_awaiting_contract(
    student_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Enrollment the student still has to sign a contract for, if any"""
    enrollment = await service.get_awaiting_contract_by_student(student_id)
    return {"student_id": student_id, "enrollment": format_enrollment(enrollment) if enrollment else None}


@router.get("/{enrollment_id}", response_model=dict)
async def get_enrollment(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    return format_enrollment(await service.get_enrollment(enrollment_id))


@router.get("/{enrollment_id}/documents", response_model=dict)
async def get_enrollment_documents(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Mandatory document status for the enrollment's student"""
    enrollment = await service.get_enrollment(enrollment_id)
    documents = await service.document_service.get_document_status(enrollment.student_id)
    return {
        "enrollment_id": enrollment.id,
        "student_id": enrollment.student_id,
        "all_approved": all(d["is_approved"] for d in documents),
        "documents": documents,
    }


@router.post("/", response_model=dict, status_code=201)
async def create_enrollment(
    enrollment_data: EnrollmentCreate,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Create new enrollment"""
    enrollment = await service.create_enrollment(**enrollment_data.model_dump())
    return {"message": "Enrollment created successfully", **format_enrollment(enrollment)}


@router.post("/{enrollment_id}/activate", response_model=dict)
async def activate_enrollment(
    enrollment_id: int,
    body: Optional[ActivateRequest] = None,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    require_documents = body.require_documents if body else True
    enrollment = await service.activate_enrollment(enrollment_id, require_documents=require_documents)
    return {"message": "Enrollment activated", **format_enrollment(enrollment)}


@router.post("/{enrollment_id}/cancel", response_model=dict)
async def cancel_enrollment(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollment = await service.cancel_enrollment(enrollment_id)
    return {"message": "Enrollment cancelled", **format_enrollment(enrollment)}


@router.post("/{enrollment_id}/advance-semester", response_model=dict)
async def advance_semester(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollment = await service.advance_semester(enrollment_id)
    return {"message": f"Enrollment is now {enrollment.status.value}", **format_enrollment(enrollment)}


@router.patch("/{enrollment_id}/status", response_model=dict)
async def update_enrollment_status(
    enrollment_id: int,
    status_data: StatusUpdate,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Administrative status change"""
    enrollment = await service.update_status(enrollment_id, status_data.status)
    return {"message": f"Enrollment status updated to '{enrollment.status.value}'", **format_enrollment(enrollment)}


@router.patch("/{enrollment_id}/current-semester", response_model=dict)
async def update_current_semester(
    enrollment_id: int,
    semester_data: CurrentSemesterUpdate,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollment = await service.update_current_semester(enrollment_id, semester_data.current_semester)
    return format_enrollment(enrollment)


@router.delete("/{enrollment_id}", response_model=dict)
async def delete_enrollment(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    await service.delete_enrollment(enrollment_id)
    return {"message": "Enrollment deleted", "id": enrollment_id}
