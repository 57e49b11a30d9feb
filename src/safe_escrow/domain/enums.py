"""Domain enumerations for safe transactions.

Framework-agnostic: no SQLAlchemy, no FastAPI imports.
"""

import enum


class SettlementStatus(enum.StrEnum):
    """Settlement progress of a safe transaction.

    WAITING -> READY_FOR_SETTLEMENT is driven outside this service;
    SETTLED is terminal and never left once reached.
    """

    WAITING = "WAITING"
    READY_FOR_SETTLEMENT = "READY_FOR_SETTLEMENT"
    SETTLED = "SETTLED"


class EscrowStep(enum.StrEnum):
    """Display step derived from a record's flags, least to most advanced."""

    AWAITING_DEPOSIT = "AwaitingDeposit"
    PREPARING_SHIPMENT = "PreparingShipment"
    IN_TRANSIT = "InTransit"
    AWAITING_SETTLEMENT = "AwaitingSettlement"
    SETTLEMENT_READY = "SettlementReady"
    SETTLED = "Settled"


class TransactionStatus(enum.StrEnum):
    """Status of the owning marketplace transaction."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MessageType(enum.StrEnum):
    """SMS message categories recorded in sms_logs.message_type."""

    DEPOSIT_CONFIRMED = "DEPOSIT_CONFIRMED"
    SHIPPING_STARTED = "SHIPPING_STARTED"


class AdminAction(enum.StrEnum):
    """Action discriminator accepted by the admin entry point."""

    CONFIRM_DEPOSIT = "confirm_deposit"
    CONFIRM_SHIPPING = "confirm_shipping"
    PROCESS_SETTLEMENT = "process_settlement"
    UPDATE_NOTES = "update_notes"
    GET_STATS = "get_stats"
    GET_LIST = "get_list"
