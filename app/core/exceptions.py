from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class ExamPortalError(HTTPException):
    """Base class for business-rule failures.

    Raised from services before any mutation is applied; the global handler
    renders ``code`` into the error envelope so clients can branch on it.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    default_detail: str = "Request could not be processed."

    def __init__(self, detail: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)
        self.details = details


class Forbidden(ExamPortalError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_detail = "You do not have permission to perform this action."


class NotFound(ExamPortalError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_detail = "Resource not found."


class InvalidStateTransition(ExamPortalError):
    code = "INVALID_STATE_TRANSITION"
    default_detail = "Operation is not allowed in the current state."


class AlreadyEnrolled(ExamPortalError):
    code = "ALREADY_ENROLLED"
    default_detail = "Already enrolled in this exam."


class ExamNotPublished(ExamPortalError):
    code = "EXAM_NOT_PUBLISHED"
    default_detail = "Cannot enroll in an unpublished exam."


class ExamNotPurchasable(ExamPortalError):
    code = "EXAM_NOT_PURCHASABLE"
    default_detail = "This exam is not available for purchase."


class NoRemainingQuantity(ExamPortalError):
    code = "NO_REMAINING_QUANTITY"
    default_detail = "No remaining licenses for this exam."


class InvalidQuantity(ExamPortalError):
    code = "INVALID_QUANTITY"
    default_detail = "Quantity must be at least 1."


class ValidationError(ExamPortalError):
    code = "VALIDATION_ERROR"
    default_detail = "Invalid input."


class DuplicateCertificateNumber(ExamPortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DUPLICATE_CERTIFICATE_NUMBER"
    default_detail = "Could not allocate a unique certificate number."
