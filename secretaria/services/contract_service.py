# secretaria/services/contract_service.py
from typing import List, Optional
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .base_service import BaseService
from ..core.exceptions import NotFoundError, PermissionDeniedError, ContractAlreadyAcceptedError
from ..models.contract import Contract
from ..models.enrollment import Enrollment

logger = logging.getLogger(__name__)


class ContractService(BaseService[Contract]):
    def __init__(self, db: AsyncSession):
        super().__init__(Contract, db)

    async def get_by_enrollment(self, enrollment_id: int) -> List[Contract]:
        """All contracts of an enrollment, most recent period first"""
        stmt = select(self.model).where(
            self.model.enrollment_id == enrollment_id,
            self.model.is_deleted == False
        ).order_by(self.model.year.desc(), self.model.semester.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_for_period(self, enrollment_id: int, semester: int, year: int) -> Optional[Contract]:
        stmt = select(self.model).where(
            self.model.enrollment_id == enrollment_id,
            self.model.semester == semester,
            self.model.year == year,
            self.model.is_deleted == False
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def has_accepted_contract(self, enrollment_id: int, semester: int, year: int) -> bool:
        contract = await self.get_for_period(enrollment_id, semester, year)
        return contract is not None and contract.is_accepted

    async def request_new_contract(self, enrollment: Enrollment, semester: int, year: int) -> Contract:
        """Create the contract for an enrollment period, or return the one already issued.

        Flushes but does not commit; the caller owns the transaction.
        """
        existing = await self.get_for_period(enrollment.id, semester, year)
        if existing:
            logger.info(f"Contract {existing.id} already issued for enrollment {enrollment.id} ({semester}/{year})")
            return existing

        contract = Contract(
            enrollment_id=enrollment.id,
            student_id=enrollment.student_id,
            semester=semester,
            year=year,
            file_name=f"contrato_{enrollment.id}_{year}_{semester}.pdf",
        )
        self.db.add(contract)
        await self.db.flush()
        logger.info(f"Contract requested for enrollment {enrollment.id} ({semester}/{year})")
        return contract

    async def get_acceptable_contract(self, contract_id: int, student_id: int) -> Contract:
        """Load a contract the student may accept, without changing it.

        The acceptance itself is written by ``EnrollmentService.accept_contract``
        in the same commit as the enrollment's status change.
        """
        contract = await self.get(contract_id)
        if not contract:
            raise NotFoundError("Contract", contract_id)
        if contract.student_id != student_id:
            logger.warning(f"Student {student_id} tried to accept contract {contract_id} owned by student {contract.student_id}")
            raise PermissionDeniedError("You cannot accept a contract that belongs to another student")
        if contract.is_accepted:
            raise ContractAlreadyAcceptedError(contract_id)
        return contract
