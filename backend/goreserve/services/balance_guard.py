# backend/goreserve/services/balance_guard.py
"""
Balance Guard for GoReserve

Decides whether an available balance covers a required amount and, when
it does not, which remediation options to offer. Pure computation: the
guard never reads or writes the wallet ledger.
"""

import logging
from typing import Any, Mapping, Optional

from ..core.config import settings
from ..core.enums import BalanceKind
from ..domain import balance
from ..domain.balance import BalanceDecision, BalanceShortage
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class BalanceGuard:
    def __init__(self, currency: Optional[str] = None, plan_threshold: Optional[Any] = None):
        self.currency = currency or settings.payment_currency
        self.plan_threshold = (
            settings.payment_plan_threshold if plan_threshold is None else plan_threshold
        )

    def evaluate(
        self,
        required: Any,
        available: Any,
        kind: BalanceKind = BalanceKind.WALLET,
        context: Optional[Mapping[str, Any]] = None,
        message: Optional[str] = None,
    ) -> BalanceDecision:
        decision = balance.evaluate(
            required,
            available,
            BalanceKind(kind),
            context=context,
            currency=self.currency,
            plan_threshold=self.plan_threshold,
            message=message,
        )
        if isinstance(decision, BalanceShortage):
            prometheus_metrics.record_balance_shortage(decision.kind.value)
            logger.info(
                f"Balance shortage of {decision.shortage} on {decision.kind.value}",
                extra={
                    "balance_kind": decision.kind.value,
                    "required": str(decision.required),
                    "available": str(decision.available),
                },
            )
        return decision

    # Shortcuts for the common balance kinds

    def for_wallet(
        self, required: Any, available: Any, user_id: Optional[str] = None
    ) -> BalanceDecision:
        context = {"currency": self.currency}
        if user_id:
            context["user_id"] = user_id
        return self.evaluate(required, available, BalanceKind.WALLET, context)

    def for_credit(
        self, required_credits: Any, available_credits: Any, user_id: Optional[str] = None
    ) -> BalanceDecision:
        context = {"credit_type": "booking_credits"}
        if user_id:
            context["user_id"] = user_id
        return self.evaluate(required_credits, available_credits, BalanceKind.CREDIT, context)

    def for_deposit(
        self,
        required_deposit: Any,
        available: Any,
        booking_ref: Optional[str] = None,
        total_amount: Optional[Any] = None,
        deposit_percentage: int = 50,
    ) -> BalanceDecision:
        context = {
            "booking_ref": booking_ref,
            "total_amount": str(total_amount) if total_amount is not None else None,
            "deposit_percentage": deposit_percentage,
        }
        return self.evaluate(required_deposit, available, BalanceKind.DEPOSIT, context)

    def for_refund(
        self, refund_amount: Any, business_balance: Any, business_id: str
    ) -> BalanceDecision:
        return self.evaluate(
            refund_amount,
            business_balance,
            BalanceKind.BUSINESS_BALANCE,
            {"business_id": business_id, "refund_type": "customer_refund"},
            message="Insufficient business balance to process refund",
        )
