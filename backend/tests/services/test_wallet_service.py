"""
Tests for the append-only wallet ledger.
"""

from decimal import Decimal

import pytest

from goreserve.core.enums import LedgerEntryType, LedgerReferenceType
from goreserve.core.exceptions import ValidationException
from goreserve.domain.balance import BalanceShortage
from goreserve.models import WalletTransaction
from goreserve.services.wallet_service import WalletService


@pytest.fixture
def wallet(db, lock_manager):
    return WalletService(db, lock_manager=lock_manager)


def test_empty_wallet_has_zero_balance(wallet):
    assert wallet.get_balance("nobody") == Decimal("0.00")


def test_credit_appends_entry(wallet):
    entry = wallet.credit("u1", "100", reference_id="topup-1")

    assert entry.type == LedgerEntryType.CREDIT.value
    assert Decimal(entry.amount) == Decimal("100.00")
    assert Decimal(entry.balance_after) == Decimal("100.00")
    assert entry.signed_amount == Decimal("100.00")
    assert entry.reference_type == LedgerReferenceType.TOP_UP.value
    assert wallet.get_balance("u1") == Decimal("100.00")


def test_debit_reduces_balance(wallet):
    wallet.credit("u1", Decimal("100.00"))
    entry = wallet.debit("u1", Decimal("30.00"), reference_id="BKAAAA1111")

    assert isinstance(entry, WalletTransaction)
    assert entry.reference_type == LedgerReferenceType.BOOKING.value
    assert Decimal(entry.balance_after) == Decimal("70.00")
    assert entry.signed_amount == Decimal("-30.00")
    assert wallet.get_balance("u1") == Decimal("70.00")


def test_debit_beyond_balance_returns_shortage_without_writing(db, wallet):
    wallet.credit("u1", Decimal("80.00"))

    decision = wallet.debit("u1", Decimal("120.00"))

    assert isinstance(decision, BalanceShortage)
    assert decision.shortage == Decimal("40.00")
    assert decision.option("top_up").data["minimum_amount"] == Decimal("40.00")
    assert db.query(WalletTransaction).filter_by(user_id="u1").count() == 1
    assert wallet.get_balance("u1") == Decimal("80.00")


def test_exact_balance_can_be_spent(wallet):
    wallet.credit("u1", Decimal("25.00"))
    wallet.debit("u1", Decimal("25.00"))
    assert wallet.get_balance("u1") == Decimal("0.00")


@pytest.mark.parametrize("amount", ["0", "-5", Decimal("0.001")])
def test_non_positive_amounts_are_rejected(wallet, amount):
    with pytest.raises(ValidationException) as exc_info:
        wallet.credit("u1", amount)
    assert exc_info.value.code == "INVALID_WALLET_AMOUNT"


def test_balances_are_per_user(wallet):
    wallet.credit("u1", Decimal("10.00"))
    wallet.credit("u2", Decimal("15.00"))
    assert wallet.get_balance("u1") == Decimal("10.00")
    assert wallet.get_balance("u2") == Decimal("15.00")


class TestReconcile:
    def test_consistent_ledger(self, wallet):
        wallet.credit("u1", Decimal("50.00"))
        wallet.debit("u1", Decimal("20.00"))

        reconciliation = wallet.reconcile("u1")

        assert reconciliation.consistent
        assert reconciliation.snapshot == Decimal("30.00")
        assert wallet.recompute_balance("u1") == Decimal("30.00")

    def test_drifted_snapshot_is_detected(self, db, wallet):
        wallet.credit("u1", Decimal("50.00"))
        db.add(
            WalletTransaction(
                user_id="u1",
                type=LedgerEntryType.CREDIT.value,
                amount=Decimal("5.00"),
                balance_after=Decimal("99.00"),
            )
        )
        db.commit()

        reconciliation = wallet.reconcile("u1")

        assert not reconciliation.consistent
        assert reconciliation.snapshot == Decimal("99.00")
        assert reconciliation.computed == Decimal("55.00")
        assert wallet.recompute_balance("u1") == Decimal("55.00")
