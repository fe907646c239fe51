"""Assistant exception hierarchy.

Only conditions the caller cannot recover from inside the conversation are
raised; pipeline failures (bad input, quota, upstream, commit) travel back as
unsuccessful turn responses.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class AssistantError(Exception):
    def __init__(self, message: str = "", code: str = "ASSISTANT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AdminRequiredError(AssistantError):
    def __init__(self, message: str = "נדרשת הרשאת מנהל"):
        super().__init__(message, code="ADMIN_REQUIRED")


class InvalidPhaseError(AssistantError):
    def __init__(self, message: str = "Operation not allowed in the current conversation phase"):
        super().__init__(message, code="INVALID_PHASE")
