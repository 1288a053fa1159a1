# secretaria/services/reenrollment_service.py
"""Global reenrollment: carry every eligible active enrollment into a new period."""
import asyncio
import logging
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from .credential_service import CredentialService
from .enrollment_service import EnrollmentService
from ..core.config import settings
from ..core.exceptions import AuthenticationFailedError, SecretariaException
from ..utils.academic_period import validate_period

logger = logging.getLogger(__name__)


class ReenrollmentService:
    def __init__(
        self,
        db: AsyncSession,
        enrollment_service: Optional[EnrollmentService] = None,
        credential_service: Optional[CredentialService] = None,
        item_timeout: Optional[float] = None,
        batch_timeout: Optional[float] = None,
    ):
        self.db = db
        self.enrollment_service = enrollment_service or EnrollmentService(db)
        self.credential_service = credential_service or CredentialService(db)
        self.item_timeout = item_timeout or settings.reenrollment_item_timeout_seconds
        self.batch_timeout = batch_timeout or settings.reenrollment_batch_timeout_seconds

    async def _rollback_item(self, enrollment_id: int):
        # Logged only; the caller records the item as failed
        try:
            await self.db.rollback()
        except Exception as e:
            logger.error(f"Rollback after enrollment {enrollment_id} failed: {e.__class__.__name__}: {e}")

    async def preview_reenrollment(self, semester: int, year: int) -> Dict:
        """Enrollments a global reenrollment for this period would touch, without changing anything"""
        validate_period(semester, year)
        enrollment_ids = await self.enrollment_service.list_reenrollment_candidates(semester, year)
        return {
            "semester": semester,
            "year": year,
            "total_eligible": len(enrollment_ids),
            "enrollment_ids": enrollment_ids,
        }

    async def process_global_reenrollment(
        self,
        semester: int,
        year: int,
        admin_user_id: int,
        admin_password: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict:
        """Reenroll every eligible enrollment into (semester, year).

        The administrator's password is checked first and a mismatch aborts
        before anything is read or written. Each enrollment is then processed
        and committed on its own; a failing item is rolled back and reported
        in ``failures`` while the rest of the batch continues. The loop stops
        early, reporting the remaining ids as skipped, when the batch deadline
        passes or ``cancel_event`` is set.
        """
        validate_period(semester, year)
        logger.info(f"Global reenrollment requested - semester: {semester}, year: {year}, admin: {admin_user_id}")

        if not await self.credential_service.verify_password(admin_user_id, admin_password):
            logger.warning(f"Global reenrollment refused: wrong password for admin {admin_user_id}")
            raise AuthenticationFailedError()

        candidate_ids = await self.enrollment_service.list_reenrollment_candidates(semester, year)
        logger.info(f"{len(candidate_ids)} enrollments eligible for reenrollment into {semester}/{year}")

        affected: List[int] = []
        failures: List[Dict] = []
        skipped: List[int] = []
        interrupted: Optional[str] = None

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.batch_timeout

        for index, enrollment_id in enumerate(candidate_ids):
            if cancel_event is not None and cancel_event.is_set():
                interrupted = "cancelled"
            elif loop.time() >= deadline:
                interrupted = "timeout"
            if interrupted:
                skipped = candidate_ids[index:]
                logger.warning(f"Global reenrollment {interrupted}; {len(skipped)} enrollments not processed")
                break

            timeout = min(self.item_timeout, deadline - loop.time())
            try:
                await asyncio.wait_for(
                    self.enrollment_service.reenroll_enrollment(enrollment_id, semester, year),
                    timeout=timeout,
                )
                affected.append(enrollment_id)
            except asyncio.TimeoutError:
                await self._rollback_item(enrollment_id)
                logger.error(f"Reenrollment of enrollment {enrollment_id} timed out after {timeout:.1f}s")
                failures.append({"enrollment_id": enrollment_id, "error": f"Timed out after {timeout:.1f}s"})
            except SecretariaException as e:
                await self._rollback_item(enrollment_id)
                logger.error(f"Reenrollment of enrollment {enrollment_id} rejected: {e.message}")
                failures.append({"enrollment_id": enrollment_id, "error": e.message})
            except Exception as e:
                # One broken enrollment must not stop the others
                await self._rollback_item(enrollment_id)
                logger.error(f"Reenrollment of enrollment {enrollment_id} failed: {e}")
                failures.append({"enrollment_id": enrollment_id, "error": str(e) or e.__class__.__name__})

        logger.info(
            f"Global reenrollment finished - admin: {admin_user_id}, period: {semester}/{year}, "
            f"processed: {len(affected)}, failed: {len(failures)}, skipped: {len(skipped)}"
        )

        return {
            "semester": semester,
            "year": year,
            "total_eligible": len(candidate_ids),
            "total_students": len(affected),
            "affected_enrollment_ids": affected,
            "failures": failures,
            "skipped_enrollment_ids": skipped,
            "interrupted": interrupted,
        }
