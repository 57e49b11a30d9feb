"""Domain layer: pure business rules with zero framework dependencies."""

from safe_escrow.domain.enums import (
    AdminAction,
    EscrowStep,
    MessageType,
    SettlementStatus,
    TransactionStatus,
)
from safe_escrow.domain.exceptions import (
    DependencyFailureError,
    EscrowAdminError,
    EscrowNotFoundError,
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    TransactionNotFoundError,
    UnauthenticatedError,
    ValidationFailureError,
)
from safe_escrow.domain.models import (
    AdminIdentity,
    DeliveryRecord,
    DerivedView,
    EscrowListItem,
    EscrowParties,
    EscrowRecord,
    EscrowStats,
    PartyInfo,
)
from safe_escrow.domain.state_machine import (
    EscrowStateMachine,
    derive_step,
    derive_view,
    guard_transition,
)

__all__ = [
    "AdminAction",
    "EscrowStep",
    "MessageType",
    "SettlementStatus",
    "TransactionStatus",
    "DependencyFailureError",
    "EscrowAdminError",
    "EscrowNotFoundError",
    "ForbiddenError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "TransactionNotFoundError",
    "UnauthenticatedError",
    "ValidationFailureError",
    "AdminIdentity",
    "DeliveryRecord",
    "DerivedView",
    "EscrowListItem",
    "EscrowParties",
    "EscrowRecord",
    "EscrowStats",
    "PartyInfo",
    "EscrowStateMachine",
    "derive_step",
    "derive_view",
    "guard_transition",
]
