"""
Helpdesk error types

Hierarchy:
    HelpdeskError (base)
    ├── ListStoreError (transport/backend failure inside a list-store adapter)
    ├── TicketRepositoryError (wrapped ticket operation failure)
    └── CategoryLoadError (category option source failure)

Malformed query input is never an error; it is normalized to defaults.
"""
from typing import Optional


class HelpdeskError(Exception):
    """
    Base class for all service errors.

    The message is the single human-readable description surfaced to
    callers; ``code`` identifies the error type for API payloads.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize for API error payloads"""
        return {
            "error": self.code,
            "message": self.message,
        }


class ListStoreError(HelpdeskError):
    """A list-store request failed (network, auth, validation, not found)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TicketRepositoryError(HelpdeskError):
    """
    A ticket repository operation failed.

    Every repository operation wraps its underlying cause in one of these,
    embedding the cause's message in ``message``.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        ticket_id: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.ticket_id = ticket_id
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["operation"] = self.operation
        if self.ticket_id is not None:
            result["ticket_id"] = self.ticket_id
        return result


class CategoryLoadError(HelpdeskError):
    """Category options could not be loaded"""
