# secretaria/models/user.py
import enum
from sqlalchemy import Column, String, Boolean
from .base import Base

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"
    TEACHER = "teacher"

class User(Base):
    __tablename__ = "users"

    name = Column(String(200), nullable=False)
    email = Column(String(100), unique=True, index=True)
    password_hash = Column(String(60), nullable=False)
    role = Column(String(20), default=UserRole.STUDENT.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
