# secretaria/routers/contracts.py
from fastapi import APIRouter, Depends

from ..models.contract import Contract
from ..schemas.enrollment_schemas import ContractAccept
from ..services.enrollment_service import EnrollmentService
from .enrollments import get_enrollment_service, format_enrollment

router = APIRouter(prefix="/api/v1/contracts", tags=["Contracts"])


def format_contract(contract: Contract) -> dict:
    return {
        "id": contract.id,
        "enrollment_id": contract.enrollment_id,
        "student_id": contract.student_id,
        "semester": contract.semester,
        "year": contract.year,
        "period": contract.period_label,
        "file_name": contract.file_name,
        "status": "accepted" if contract.is_accepted else "pending",
        "accepted_at": contract.accepted_at.isoformat() if contract.accepted_at else None,
    }


@router.get("/enrollment/{enrollment_id}", response_model=dict)
async def get_enrollment_contracts(
    enrollment_id: int,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    await service.get_enrollment(enrollment_id)
    contracts = await service.contract_service.get_by_enrollment(enrollment_id)
    return {"enrollment_id": enrollment_id, "items": [format_contract(c) for c in contracts]}


@router.post("/{contract_id}/accept", response_model=dict)
async def accept_contract(
    contract_id: int,
    body: ContractAccept,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Student accepts a contract; the enrollment then moves on from 'contract'"""
    contract, enrollment = await service.accept_contract(contract_id, body.student_id)
    return {
        "message": "Contract accepted",
        "contract": format_contract(contract),
        "enrollment": format_enrollment(enrollment),
    }
