# secretaria/services/credential_service.py
"""Administrator re-authentication against stored bcrypt hashes."""
import asyncio
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.exceptions import PermissionDeniedError
from ..core.security import verify_password
from ..models.user import User

logger = logging.getLogger(__name__)


class CredentialService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int):
        stmt = select(User).where(User.id == user_id, User.is_deleted == False)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def verify_password(self, admin_user_id: int, password: str) -> bool:
        """Check an administrator's password.

        Returns False for a wrong password or an unknown/inactive user and
        raises PermissionDeniedError when the user exists but is not an admin.
        """
        user = await self.get_user(admin_user_id)
        if not user or not user.is_active:
            logger.warning(f"Re-authentication attempted for unknown or inactive user {admin_user_id}")
            return False
        if not user.is_admin:
            logger.warning(f"Re-authentication attempted by non-admin user {admin_user_id} (role {user.role})")
            raise PermissionDeniedError("Only administrators can run this operation")

        # bcrypt is CPU bound, keep it off the event loop
        valid = await asyncio.to_thread(verify_password, password, user.password_hash)
        if valid:
            logger.info(f"Admin {admin_user_id} re-authenticated")
        else:
            logger.warning(f"Incorrect password for admin {admin_user_id}")
        return valid
