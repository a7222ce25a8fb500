"""Database model exports."""

from .ledger import (
    Investment,
    InvestmentStatus,
    InvestmentTransaction,
    InvestmentType,
    TransactionKind,
    ValueOverride,
)
from .snapshots import InvestmentSnapshot, NetWorthSnapshot

__all__ = [
    "Investment",
    "InvestmentTransaction",
    "ValueOverride",
    "InvestmentType",
    "TransactionKind",
    "InvestmentStatus",
    "InvestmentSnapshot",
    "NetWorthSnapshot",
]
