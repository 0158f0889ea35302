# backend/goreserve/repositories/wallet_repository.py
"""
Wallet Repository for GoReserve

The ledger is append-only: this repository inserts entries and reads
balances, it never updates or deletes a row.
"""

from decimal import Decimal
import logging
from typing import Optional, cast

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..core.enums import LedgerEntryType
from ..core.exceptions import RepositoryException
from ..models.wallet import WalletTransaction
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WalletRepository(BaseRepository[WalletTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, WalletTransaction)
        self.logger = logging.getLogger(__name__)

    def get_latest_entry(self, user_id: str) -> Optional[WalletTransaction]:
        try:
            return cast(
                Optional[WalletTransaction],
                self.db.query(WalletTransaction)
                .filter(WalletTransaction.user_id == user_id)
                .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
                .first(),
            )
        except Exception as exc:
            self.logger.error("Failed to load latest wallet entry: %s", str(exc))
            raise RepositoryException("Failed to load latest wallet entry") from exc

    def sum_entries(self, user_id: str) -> Decimal:
        """Signed sum of every ledger entry of a user."""
        signed = case(
            (WalletTransaction.type == LedgerEntryType.CREDIT.value, WalletTransaction.amount),
            else_=-WalletTransaction.amount,
        )
        try:
            result = (
                self.db.query(func.coalesce(func.sum(signed), 0))
                .filter(WalletTransaction.user_id == user_id)
                .scalar()
            )
            return Decimal(str(result or 0)).quantize(Decimal("0.01"))
        except Exception as exc:
            self.logger.error("Failed to total wallet entries: %s", str(exc))
            raise RepositoryException("Failed to total wallet entries") from exc
