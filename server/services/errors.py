"""Domain error codes for the volunteer points ledger."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    INVALID_AMOUNT = "INVALID_AMOUNT"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    status_code = 400

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Raised when an event, volunteer, assignment, submission or ledger row is absent."""

    status_code = 404

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=message)


class ConflictError(DomainError):
    """Raised when the target already is in the requested state (e.g. event already completed)."""

    status_code = 409

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.CONFLICT, message=message)


class InvalidStateError(DomainError):
    """Raised when the operation is not allowed in the target's current state."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_STATE, message=message)


class InvalidAmountError(DomainError):
    """Raised for non-positive awards and verifications beyond the pending balance."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_AMOUNT, message=message)
