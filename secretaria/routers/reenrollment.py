# secretaria/routers/reenrollment.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.database import get_db
from ..schemas.enrollment_schemas import ReenrollmentPeriod, GlobalReenrollmentRequest
from ..services.reenrollment_service import ReenrollmentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/reenrollment", tags=["Reenrollment"])


def get_reenrollment_service(db: AsyncSession = Depends(get_db)) -> ReenrollmentService:
    return ReenrollmentService(db)


@router.post("/preview", response_model=dict)
async def preview_global_reenrollment(
    period: ReenrollmentPeriod,
    service: ReenrollmentService = Depends(get_reenrollment_service)
):
    """List the enrollments a global reenrollment would carry into the period"""
    return await service.preview_reenrollment(period.semester, period.year)


@router.post("/process-global", response_model=dict)
async def process_global_reenrollment(
    request: GlobalReenrollmentRequest,
    service: ReenrollmentService = Depends(get_reenrollment_service)
):
    """Reenroll every eligible student; requires the administrator's password"""
    result = await service.process_global_reenrollment(
        semester=request.semester,
        year=request.year,
        admin_user_id=request.admin_user_id,
        admin_password=request.admin_password,
    )
    return {
        "success": True,
        "data": {
            "totalStudents": result["total_students"],
            "affectedEnrollmentIds": result["affected_enrollment_ids"],
            "totalEligible": result["total_eligible"],
            "failures": result["failures"],
            "skippedEnrollmentIds": result["skipped_enrollment_ids"],
            "interrupted": result["interrupted"],
        },
        "message": (
            f"Global reenrollment processed for {result['semester']}/{result['year']}: "
            f"{result['total_students']} students reenrolled, {len(result['failures'])} failed"
        ),
    }
