# backend/goreserve/models/wallet.py
"""
Wallet ledger.

Entries are append-only. A user's balance is the signed sum of their
entries; ``balance_after`` caches the running balance at write time so the
current balance is one indexed read and any drift can be detected by
recomputing the sum.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Numeric, String, Text
import ulid

from ..core.enums import LedgerEntryType
from ..database import Base


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False)
    type = Column(String(10), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    reference_type = Column(String(20), nullable=True)
    reference_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        CheckConstraint("type IN ('credit', 'debit')", name="ck_wallet_transactions_type"),
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        Index("idx_wallet_transactions_user_created_at", "user_id", "created_at"),
        Index("idx_wallet_transactions_reference", "reference_type", "reference_id"),
    )

    @property
    def signed_amount(self) -> Decimal:
        value = Decimal(self.amount)
        return value if self.type == LedgerEntryType.CREDIT.value else -value

    def __repr__(self) -> str:
        return f"<WalletTransaction {self.user_id} {self.type} {self.amount} -> {self.balance_after}>"
