"""Import all models here, if needed for Alembic migration."""
from .base import Base

from .user import User, UserRole
from .student import Student
from .course import Course, DurationType
from .enrollment import Enrollment, EnrollmentStatus, OPEN_STATUSES, TERMINAL_STATUSES, ALLOWED_TRANSITIONS
from .contract import Contract
from .document import Document, DocumentType, DocumentStatus

# This ensures all models are loaded when importing models
