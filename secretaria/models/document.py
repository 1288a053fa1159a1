# secretaria/models/document.py
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base

class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class DocumentType(Base):
    __tablename__ = "document_types"

    name = Column(String(100), nullable=False)
    description = Column(Text)
    is_required = Column(Boolean, default=False, nullable=False)
    # student | teacher | both
    user_type = Column(String(20), default="student", nullable=False)

    documents = relationship("Document", back_populates="document_type")

class Document(Base):
    __tablename__ = "documents"

    # Foreign Keys
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    document_type_id = Column(Integer, ForeignKey("document_types.id"), nullable=False, index=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    file_name = Column(String(255))
    status = Column(String(20), default=DocumentStatus.PENDING.value, nullable=False, index=True)
    reviewed_at = Column(DateTime(timezone=True))
    observations = Column(Text)

    # Relationships
    student = relationship("Student", back_populates="documents")
    document_type = relationship("DocumentType", back_populates="documents")
