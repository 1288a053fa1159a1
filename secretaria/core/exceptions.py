# secretaria/core/exceptions.py
"""Custom exceptions for the Secretaria application."""
from fastapi import HTTPException
from typing import Any, Dict, Optional


class SecretariaException(HTTPException):
    """Base exception for Secretaria application."""
    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def message(self) -> str:
        if isinstance(self.detail, dict):
            return self.detail.get("message", "")
        return str(self.detail)


class ValidationError(SecretariaException):
    """Exception raised for validation errors."""
    def __init__(self, message: str, field: Optional[str] = None):
        detail = {"error": "Validation Error", "message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=422, detail=detail)


class NotFoundError(SecretariaException):
    """Exception raised when a resource does not exist (or is soft-deleted)."""
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message += f" with id: {resource_id}"
        super().__init__(
            status_code=404,
            detail={"error": "Not Found", "message": message, "resource": resource}
        )


class DuplicateOpenEnrollmentError(SecretariaException):
    """A student already holds an active, pending or contract enrollment."""
    def __init__(
        self,
        student_id: int,
        conflicting_enrollment_id: Optional[int] = None,
        conflicting_status: Optional[str] = None,
        course_id: Optional[int] = None,
    ):
        if conflicting_enrollment_id is not None:
            message = (
                f"Student {student_id} already has a {conflicting_status} enrollment "
                f"(id {conflicting_enrollment_id}, course {course_id}). "
                f"Complete or cancel it before opening another one."
            )
        else:
            message = f"Student {student_id} already has an open enrollment"
        self.student_id = student_id
        self.conflicting_enrollment_id = conflicting_enrollment_id
        self.conflicting_status = conflicting_status
        super().__init__(
            status_code=409,
            detail={
                "error": "Duplicate Open Enrollment",
                "message": message,
                "student_id": student_id,
                "conflicting_enrollment_id": conflicting_enrollment_id,
                "conflicting_status": conflicting_status,
                "course_id": course_id,
            }
        )


class InvalidTransitionError(SecretariaException):
    """The requested status change is not allowed from the current status."""
    def __init__(self, current_status: str, target_status: str, message: Optional[str] = None):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            status_code=409,
            detail={
                "error": "Invalid Transition",
                "message": message or f"Cannot change enrollment from '{current_status}' to '{target_status}'",
                "current_status": current_status,
                "target_status": target_status,
            }
        )


class TransitionGuardError(SecretariaException):
    """A precondition required by a transition is not satisfied."""
    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(
            status_code=422,
            detail={"error": "Transition Guard Failed", "message": message, "rule": rule}
        )


class ConcurrentModificationError(SecretariaException):
    """Exception raised when a record changed underneath the current write."""
    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            status_code=409,
            detail={
                "error": "Concurrent Modification",
                "message": f"{resource} {resource_id} was modified by another request, retry the operation",
            }
        )


class AuthenticationFailedError(SecretariaException):
    """Exception raised when re-authentication fails."""
    def __init__(self, message: str = "Incorrect password"):
        super().__init__(
            status_code=401,
            detail={"error": "Authentication Failed", "message": message}
        )


class PermissionDeniedError(SecretariaException):
    """Exception raised when the acting user lacks the required role or ownership."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            status_code=403,
            detail={"error": "Permission Denied", "message": message}
        )


class ContractAlreadyAcceptedError(SecretariaException):
    """Exception raised when accepting a contract twice."""
    def __init__(self, contract_id: int):
        super().__init__(
            status_code=422,
            detail={
                "error": "Contract Already Accepted",
                "message": f"Contract {contract_id} has already been accepted",
            }
        )
