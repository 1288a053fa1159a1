# secretaria/routers/documents.py
from fastapi import APIRouter, Depends

from ..models.document import Document
from ..schemas.enrollment_schemas import DocumentReview
from ..services.enrollment_service import EnrollmentService
from .enrollments import get_enrollment_service, format_enrollment

router = APIRouter(prefix="/api/v1/documents", tags=["Documents"])


def format_document(document: Document) -> dict:
    return {
        "id": document.id,
        "student_id": document.student_id,
        "document_type_id": document.document_type_id,
        "status": document.status,
        "reviewed_by": document.reviewed_by,
        "reviewed_at": document.reviewed_at.isoformat() if document.reviewed_at else None,
        "observations": document.observations,
    }


@router.post("/{document_id}/approve", response_model=dict)
async def approve_document(
    document_id: int,
    review: DocumentReview,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Approve a document and activate the student's pending enrollment when nothing else is missing"""
    document = await service.document_service.approve_document(
        document_id, review.reviewer_id, review.observations
    )
    enrollment = await service.handle_documents_approved(document.student_id)
    return {
        "message": "Document approved",
        "document": format_document(document),
        "enrollment": format_enrollment(enrollment) if enrollment else None,
    }


@router.post("/{document_id}/reject", response_model=dict)
async def reject_document(
    document_id: int,
    review: DocumentReview,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    document = await service.document_service.reject_document(
        document_id, review.reviewer_id, review.observations
    )
    return {"message": "Document rejected", "document": format_document(document)}
