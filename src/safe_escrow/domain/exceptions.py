"""Domain exceptions for the safe transaction admin service.

These exceptions are framework-agnostic. The API middleware translates them
into ``{"error": <message>}`` responses with a matching HTTP status.
"""


class EscrowAdminError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_ADMIN_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Authorization Errors ---


class UnauthenticatedError(EscrowAdminError):
    """Raised when no valid caller identity can be resolved."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message=message, code="UNAUTHENTICATED")


class ForbiddenError(EscrowAdminError):
    """Raised when the caller is authenticated but not an administrator."""

    def __init__(self, message: str = "Admin access required") -> None:
        super().__init__(message=message, code="FORBIDDEN")


# --- Lookup Errors ---


class NotFoundError(EscrowAdminError):
    """Base for missing records."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="NOT_FOUND")


class EscrowNotFoundError(NotFoundError):
    """Raised when a safe transaction ID does not exist."""

    def __init__(self, safe_transaction_id: str) -> None:
        super().__init__(f"Safe transaction not found: {safe_transaction_id}")
        self.safe_transaction_id = safe_transaction_id


class TransactionNotFoundError(NotFoundError):
    """Raised when the marketplace transaction owning an escrow record is missing."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


# --- Input / Workflow Errors ---


class ValidationFailureError(EscrowAdminError):
    """Raised for malformed input, e.g. a missing safeTransactionId."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_FAILURE")


class InvalidStateTransitionError(EscrowAdminError):
    """Raised when strict step ordering rejects a transition.

    Example: confirm_shipping while the record is still AwaitingDeposit.
    """

    def __init__(self, current_step: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {attempted_event} from {current_step}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_step = current_step
        self.attempted_event = attempted_event


# --- Infrastructure Errors ---


class DependencyFailureError(EscrowAdminError):
    """Raised when the data store fails for reasons other than not-found.

    The message is user-facing and never carries store error detail.
    """

    def __init__(self, message: str = "Data store request failed") -> None:
        super().__init__(message=message, code="DEPENDENCY_FAILURE")
