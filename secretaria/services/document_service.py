# secretaria/services/document_service.py
from typing import Dict, List, Optional
from datetime import datetime, timezone
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .base_service import BaseService
from ..core.exceptions import NotFoundError, ValidationError
from ..models.document import Document, DocumentType, DocumentStatus

logger = logging.getLogger(__name__)

STUDENT_USER_TYPES = ("student", "both")


class DocumentService(BaseService[Document]):
    def __init__(self, db: AsyncSession):
        super().__init__(Document, db)

    async def get_required_document_types(self) -> List[DocumentType]:
        """Document types every student must have approved"""
        stmt = select(DocumentType).where(
            DocumentType.is_required == True,
            DocumentType.user_type.in_(STUDENT_USER_TYPES),
            DocumentType.is_deleted == False
        ).order_by(DocumentType.id)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_by_student(self, student_id: int) -> List[Document]:
        """Documents submitted by a student, newest first"""
        stmt = select(self.model).where(
            self.model.student_id == student_id,
            self.model.is_deleted == False
        ).order_by(self.model.created_at.desc(), self.model.id.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_document_status(self, student_id: int) -> List[Dict]:
        """Status of each mandatory document for a student.

        The newest submission of each type wins, so a rejected upload followed
        by a new one reports the new one.
        """
        required_types = await self.get_required_document_types()
        submitted = await self.get_by_student(student_id)

        latest_by_type: Dict[int, Document] = {}
        for doc in submitted:
            latest_by_type.setdefault(doc.document_type_id, doc)

        status = []
        for doc_type in required_types:
            doc = latest_by_type.get(doc_type.id)
            status.append({
                "document_type_id": doc_type.id,
                "document_type_name": doc_type.name,
                "document_id": doc.id if doc else None,
                "status": doc.status if doc else "not_submitted",
                "is_approved": bool(doc) and doc.status == DocumentStatus.APPROVED.value,
            })
        return status

    async def all_mandatory_documents_approved(self, student_id: int) -> bool:
        """True when every mandatory document type has an approved submission"""
        status = await self.get_document_status(student_id)
        missing = [item["document_type_name"] for item in status if not item["is_approved"]]
        if missing:
            logger.info(f"Student {student_id} is missing approved documents: {', '.join(missing)}")
            return False
        return True

    async def _review(
        self,
        document_id: int,
        reviewer_id: int,
        new_status: DocumentStatus,
        observations: Optional[str] = None,
    ) -> Document:
        document = await self.get(document_id)
        if not document:
            raise NotFoundError("Document", document_id)
        if document.status == new_status.value:
            raise ValidationError(f"Document {document_id} is already {new_status.value}", field="status")

        document.status = new_status.value
        document.reviewed_by = reviewer_id
        document.reviewed_at = datetime.now(timezone.utc)
        if observations is not None:
            document.observations = observations
        await self.db.commit()
        await self.db.refresh(document)

        logger.info(f"Document {document_id} {new_status.value} by user {reviewer_id}")
        return document

    async def approve_document(self, document_id: int, reviewer_id: int, observations: Optional[str] = None) -> Document:
        return await self._review(document_id, reviewer_id, DocumentStatus.APPROVED, observations)

    async def reject_document(self, document_id: int, reviewer_id: int, observations: Optional[str] = None) -> Document:
        if not observations:
            raise ValidationError("A rejection reason is required", field="observations")
        return await self._review(document_id, reviewer_id, DocumentStatus.REJECTED, observations)
