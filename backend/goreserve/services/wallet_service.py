# backend/goreserve/services/wallet_service.py
"""
Wallet Service for GoReserve

Balance-affecting events are appended to the wallet ledger; no balance is
ever updated in place. Each entry stores ``balance_after`` so a user's
history can be audited, and ``reconcile`` compares that snapshot with the
recomputed sum. Writes for one user are serialized by a keyed lock.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.booking_lock import BookingLockManager, get_lock_manager, wallet_lock_key
from ..core.enums import BalanceKind, LedgerEntryType, LedgerReferenceType
from ..core.exceptions import ValidationException
from ..domain.balance import CENT, BalanceShortage, to_decimal
from ..models.wallet import WalletTransaction
from ..repositories.factory import RepositoryFactory
from ..repositories.wallet_repository import WalletRepository
from .balance_guard import BalanceGuard
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletReconciliation:
    user_id: str
    snapshot: Decimal
    computed: Decimal

    @property
    def consistent(self) -> bool:
        return self.snapshot == self.computed


class WalletService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[WalletRepository] = None,
        guard: Optional[BalanceGuard] = None,
        lock_manager: Optional[BookingLockManager] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_wallet_repository(db)
        self.guard = guard or BalanceGuard()
        self.lock_manager = lock_manager or get_lock_manager()

    @staticmethod
    def _amount(value: object) -> Decimal:
        amount = to_decimal(value).quantize(CENT)
        if amount <= 0:
            raise ValidationException(
                "Wallet amounts must be positive", code="INVALID_WALLET_AMOUNT"
            )
        return amount

    def get_balance(self, user_id: str) -> Decimal:
        """Current balance: the signed sum of the user's ledger entries."""
        return self.repository.sum_entries(user_id)

    def recompute_balance(self, user_id: str) -> Decimal:
        """Recompute the balance from the ledger, logging any drift from the stored snapshot."""
        with self.lock_manager.hold(wallet_lock_key(user_id)):
            return self.reconcile(user_id).computed

    def reconcile(self, user_id: str) -> WalletReconciliation:
        latest = self.repository.get_latest_entry(user_id)
        snapshot = Decimal(latest.balance_after) if latest is not None else Decimal("0.00")
        reconciliation = WalletReconciliation(
            user_id=user_id,
            snapshot=snapshot.quantize(CENT),
            computed=self.repository.sum_entries(user_id),
        )
        if not reconciliation.consistent:
            self.logger.error(
                f"Wallet snapshot drift for user {user_id}",
                extra={
                    "user_id": user_id,
                    "snapshot": str(reconciliation.snapshot),
                    "computed": str(reconciliation.computed),
                },
            )
        return reconciliation

    def _append(
        self,
        user_id: str,
        entry_type: LedgerEntryType,
        amount: Decimal,
        balance_after: Decimal,
        reference_type: Optional[LedgerReferenceType],
        reference_id: Optional[str],
        description: Optional[str],
    ) -> WalletTransaction:
        return self.repository.create(
            user_id=user_id,
            type=entry_type.value,
            amount=amount,
            balance_after=balance_after,
            reference_type=reference_type.value if reference_type else None,
            reference_id=reference_id,
            description=description,
        )

    @BaseService.measure_operation("wallet_credit")
    def credit(
        self,
        user_id: str,
        amount: object,
        reference_type: Optional[LedgerReferenceType] = LedgerReferenceType.TOP_UP,
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> WalletTransaction:
        value = self._amount(amount)
        with self.lock_manager.hold(wallet_lock_key(user_id)):
            with self.transaction():
                balance_after = self.get_balance(user_id) + value
                entry = self._append(
                    user_id,
                    LedgerEntryType.CREDIT,
                    value,
                    balance_after,
                    reference_type,
                    reference_id,
                    description,
                )
        self.logger.info(f"Wallet credit of {value} for user {user_id}, balance {balance_after}")
        return entry

    @BaseService.measure_operation("wallet_debit")
    def debit(
        self,
        user_id: str,
        amount: object,
        reference_type: Optional[LedgerReferenceType] = LedgerReferenceType.BOOKING,
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Union[WalletTransaction, BalanceShortage]:
        """
        Debit the wallet, or return the shortage without writing anything.
        """
        value = self._amount(amount)
        with self.lock_manager.hold(wallet_lock_key(user_id)):
            available = self.get_balance(user_id)
            decision = self.guard.evaluate(
                value, available, BalanceKind.WALLET, {"user_id": user_id}
            )
            if isinstance(decision, BalanceShortage):
                return decision
            with self.transaction():
                entry = self._append(
                    user_id,
                    LedgerEntryType.DEBIT,
                    value,
                    available - value,
                    reference_type,
                    reference_id,
                    description,
                )
        self.logger.info(f"Wallet debit of {value} for user {user_id}")
        return entry
