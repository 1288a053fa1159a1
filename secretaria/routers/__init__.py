from . import health, enrollments, contracts, documents, reenrollment

__all__ = ["health", "enrollments", "contracts", "documents", "reenrollment"]
