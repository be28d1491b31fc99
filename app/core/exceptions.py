"""
Custom exceptions for the image moderation pipeline.

Each exception carries the failure category used by the fail-open
boundary in the moderation service, so a single place can log why the
risk of a piece of content could not be determined.
"""

from typing import Optional, Dict, Any

import requests

CATEGORY_EXTRACTION = "extraction"
CATEGORY_SIGNING = "signing"
CATEGORY_TRANSPORT = "transport"
CATEGORY_DECODING = "decoding"
CATEGORY_VALIDATION = "validation"
CATEGORY_UNEXPECTED = "unexpected"


class ContentModeratorException(Exception):
    """Base exception for all moderation related errors."""

    category = CATEGORY_UNEXPECTED

    def __init__(
        self,
        message: str,
        error_code: str = "CONTENT_MODERATOR_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ContentExtractionException(ContentModeratorException):
    """Raised when rendered content cannot be parsed into a document."""

    category = CATEGORY_EXTRACTION

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CONTENT_EXTRACTION_ERROR",
            details=details
        )


class RequestSigningException(ContentModeratorException):
    """Raised when a moderation request cannot be signed."""

    category = CATEGORY_SIGNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="REQUEST_SIGNING_ERROR",
            details=details
        )


class ModerationServiceException(ContentModeratorException):
    """Raised when the remote moderation service cannot be reached or answers with an error status."""

    category = CATEGORY_TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="MODERATION_SERVICE_ERROR",
            details={**(details or {}), "status_code": status_code}
        )


class ResponseDecodingException(ContentModeratorException):
    """Raised when the moderation service response is not JSON of the expected shape."""

    category = CATEGORY_DECODING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="RESPONSE_DECODING_ERROR",
            details=details
        )


class ValidationException(ContentModeratorException):
    """Exception raised when input validation fails."""

    category = CATEGORY_VALIDATION

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={**(details or {}), "field": field}
        )


def classify_error(exc: BaseException) -> str:
    """
    Map an exception raised inside the pipeline to its failure category.

    Args:
        exc: Exception caught at the moderation boundary

    Returns:
        One of the ``CATEGORY_*`` names
    """
    if isinstance(exc, ContentModeratorException):
        return exc.category
    if isinstance(exc, requests.RequestException):
        return CATEGORY_TRANSPORT
    if isinstance(exc, ValueError):
        return CATEGORY_DECODING
    return CATEGORY_UNEXPECTED


# Exception to HTTP status code mapping
EXCEPTION_STATUS_MAPPING = {
    ContentExtractionException: 422,  # Unprocessable Entity
    RequestSigningException: 500,  # Internal Server Error
    ModerationServiceException: 502,  # Bad Gateway
    ResponseDecodingException: 502,  # Bad Gateway
    ValidationException: 400,  # Bad Request
}
