"""
Application errors.

Every failure the workflow can report is an ``ApplicationError`` carrying a
machine-readable ``kind`` and the HTTP status it maps to. The API layer renders
them as ``{"success": false, "kind": ..., "message": ...}``.
"""
from fastapi import status


class ApplicationError(Exception):
    """Base class for all workflow errors."""

    kind = "ApplicationError"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind, "message": self.message}


class InvalidProgress(ApplicationError):
    kind = "InvalidProgress"


class InvalidStatus(ApplicationError):
    kind = "InvalidStatus"


class MissingDelayReason(ApplicationError):
    kind = "MissingDelayReason"


class InvalidDateRange(ApplicationError):
    kind = "InvalidDateRange"


class InvalidComment(ApplicationError):
    kind = "InvalidComment"


class InvalidPayment(ApplicationError):
    kind = "InvalidPayment"


class Forbidden(ApplicationError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class UnknownRole(ApplicationError):
    kind = "UnknownRole"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ApplicationError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ConcurrentUpdateConflict(ApplicationError):
    kind = "ConcurrentUpdateConflict"
    status_code = status.HTTP_409_CONFLICT


class CodeGenerationFailed(ApplicationError):
    kind = "CodeGenerationFailed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StoreUnavailable(ApplicationError):
    kind = "StoreUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
