# secretaria/models/student.py
from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base

class Student(Base):
    __tablename__ = "students"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Basic Information
    name = Column(String(200), nullable=False)
    email = Column(String(100), index=True)
    cpf = Column(String(14), index=True)

    # Relationships
    user = relationship("User")
    enrollments = relationship("Enrollment", back_populates="student")
    documents = relationship("Document", back_populates="student")
