"""
Custom Exceptions for the academy API
=====================================

Domain code raises these instead of building HTTP responses itself.
A single exception handler (registered in academy.main) renders them.

Usage:
    from academy.core.exceptions import CourseNotFoundError, AlreadyEnrolledError

    if not course:
        raise CourseNotFoundError(course_id)
"""

from typing import Optional, Any, Dict, List


class AcademyError(Exception):
    """Base exception for all academy errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(AcademyError):
    """Missing, invalid or expired credentials"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):

    def __init__(self):
        super().__init__("Invalid credentials")
        self.code = "INVALID_CREDENTIALS"


class AuthorizationError(AcademyError):
    """Authenticated, but not allowed to do this"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


class EnrollmentRequiredError(AuthorizationError):

    def __init__(self, message: str = "Access denied. You must be enrolled in this course to view videos."):
        super().__init__(message)
        self.code = "ENROLLMENT_REQUIRED"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(AcademyError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class CourseNotFoundError(ResourceNotFoundError):

    def __init__(self, course_id: Optional[str] = None):
        super().__init__("Course", course_id)


class TestSeriesNotFoundError(ResourceNotFoundError):
    __test__ = False  # not a pytest test class

    def __init__(self, test_series_id: Optional[str] = None):
        super().__init__("Test series", test_series_id)


class StudentNotFoundError(ResourceNotFoundError):

    def __init__(self, student_id: Optional[str] = None):
        super().__init__("Student", student_id)


class VideoNotFoundError(ResourceNotFoundError):

    def __init__(self, video_id: Optional[str] = None):
        super().__init__("Video", video_id)


class DocumentNotFoundError(ResourceNotFoundError):

    def __init__(self, document_id: Optional[str] = None):
        super().__init__("Document", document_id)


class PaymentNotFoundError(ResourceNotFoundError):

    def __init__(self, payment_id: Optional[str] = None):
        super().__init__("Payment", payment_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AcademyError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# State Conflicts (400-type)
# ============================================

class ConflictError(AcademyError):
    """Request conflicts with the current ledger or enrollment state"""

    status_code = 400

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, code=code)


class AlreadyEnrolledError(ConflictError):

    def __init__(self, message: str = "You are already enrolled in this course"):
        super().__init__(message, code="ALREADY_ENROLLED")


class PaymentAlreadyUsedError(ConflictError):

    def __init__(self):
        super().__init__("This payment has already been used for another enrollment",
                         code="PAYMENT_ALREADY_USED")


class DuplicateUtrError(ConflictError):

    def __init__(self):
        super().__init__("This UTR is already submitted", code="DUPLICATE_UTR")


class PendingVerificationExistsError(ConflictError):

    def __init__(self):
        super().__init__("A pending verification already exists for this item", code="PENDING_EXISTS")


class PaymentNotPendingError(ConflictError):

    def __init__(self):
        super().__init__("Payment is not pending", code="NOT_PENDING")


# ============================================
# Payment Errors
# ============================================

class PaymentError(AcademyError):
    """Payment operation failed"""

    status_code = 400

    def __init__(self, message: str, code: str = "PAYMENT_ERROR"):
        super().__init__(message, code=code)


class SignatureMismatchError(PaymentError):
    """Razorpay signature did not match the recomputed HMAC"""

    def __init__(self):
        super().__init__("Payment verification failed", code="SIGNATURE_MISMATCH")


# ============================================
# Upstream Provider Errors (500-type, generic to clients)
# ============================================

class UpstreamError(AcademyError):
    """A third-party provider (Razorpay, R2, Cloudinary) failed.

    The message shown to clients is generic; the provider detail only goes to logs.
    """

    status_code = 500

    def __init__(self, message: str, provider: str, detail: str = ""):
        super().__init__(message, code="UPSTREAM_ERROR", details={"provider": provider})
        self.provider = provider
        self.detail = detail


class PaymentGatewayError(UpstreamError):

    def __init__(self, detail: str = ""):
        super().__init__("Failed to create payment order", provider="razorpay", detail=detail)


class StorageError(UpstreamError):

    def __init__(self, message: str = "Storage operation failed", detail: str = "", provider: str = "r2"):
        super().__init__(message, provider=provider, detail=detail)
        self.code = "STORAGE_ERROR"


class ServiceNotConfiguredError(AcademyError):
    status_code = 503

    def __init__(self, service: str):
        super().__init__(
            f"{service} is not configured. Please contact support.",
            code="SERVICE_NOT_CONFIGURED",
            details={"service": service},
        )


class DocumentUnavailableError(UpstreamError):
    """Every candidate download URL failed"""

    status_code = 502

    def __init__(self, attempts: List[Dict[str, Any]]):
        super().__init__("Document is temporarily unavailable", provider="document-delivery")
        self.code = "DOCUMENT_UNAVAILABLE"
        self.attempts = attempts
        self.detail = "; ".join(f"{a['strategy']}: {a['outcome']}" for a in attempts)


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: AcademyError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.message,
        "code": error.code,
    }
