"""Database infrastructure: engine, ORM models, repositories and row mapping."""

from safe_escrow.infrastructure.database.engine import (
    close_db,
    get_async_session,
    get_session_factory,
    init_db,
)
from safe_escrow.infrastructure.database.mapping import to_escrow_record
from safe_escrow.infrastructure.database.orm_models import (
    Base,
    Product,
    SafeTransaction,
    SmsLog,
    Transaction,
    User,
)
from safe_escrow.infrastructure.database.repositories import (
    SafeTransactionRepository,
    SmsLogRepository,
    TransactionRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "Product",
    "SafeTransaction",
    "SmsLog",
    "Transaction",
    "User",
    "SafeTransactionRepository",
    "SmsLogRepository",
    "TransactionRepository",
    "UserRepository",
    "to_escrow_record",
    "get_async_session",
    "get_session_factory",
    "init_db",
    "close_db",
]
