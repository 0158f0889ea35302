"""
Unit tests for balance sufficiency and remediation options.
"""

from decimal import Decimal

import pytest

from goreserve.core.enums import BalanceKind
from goreserve.domain import balance
from goreserve.domain.balance import BalanceAccepted, BalanceShortage
from goreserve.services.balance_guard import BalanceGuard


class TestWalletShortage:
    def test_shortage_and_top_up_suggestions(self):
        decision = balance.evaluate(120, 80, BalanceKind.WALLET)

        assert isinstance(decision, BalanceShortage)
        assert decision.shortage == Decimal("40")
        top_up = decision.option("top_up")
        assert top_up.data["minimum_amount"] == Decimal("40")
        assert list(top_up.data["suggested_amounts"]) == [
            Decimal("40"),
            Decimal("50"),
            Decimal("100"),
        ]
        direct = decision.option("direct_payment")
        assert direct.data["amount"] == Decimal("120")
        assert decision.option("payment_plan") is None

    def test_wallet_message(self):
        decision = balance.evaluate("120", "80", BalanceKind.WALLET)
        assert decision.message == (
            "Insufficient wallet balance. Required: $120.00, Available: $80.00, Short by: $40.00"
        )

    def test_non_usd_currency_prefix(self):
        decision = balance.evaluate(120, 80, BalanceKind.WALLET, currency="EUR")
        assert "Required: EUR 120.00" in decision.message

    def test_top_ups_round_up_to_each_step(self):
        assert balance.suggested_top_ups(Decimal("12.50")) == (
            Decimal("20"),
            Decimal("50"),
            Decimal("100"),
        )


class TestPaymentPlan:
    def test_six_month_installment_and_down_payment(self):
        decision = balance.evaluate(600, 0, BalanceKind.WALLET)

        plan = decision.option("payment_plan")
        months = {item["months"]: item["monthly_payment"] for item in plan.data["installments"]}
        assert months == {3: Decimal("200.00"), 6: Decimal("100.00"), 12: Decimal("50.00")}
        assert plan.data["down_payment"] == Decimal("180.00")

    def test_installments_round_half_up(self):
        months = {item["months"]: item["monthly_payment"] for item in balance.installments(Decimal("1000"))}
        assert months[3] == Decimal("333.33")
        assert months[6] == Decimal("166.67")

    def test_threshold_is_exclusive(self):
        decision = balance.evaluate(500, 0, BalanceKind.WALLET)
        assert decision.option("payment_plan") is None

    def test_custom_threshold(self):
        decision = balance.evaluate(200, 0, BalanceKind.DEPOSIT, plan_threshold=100)
        assert decision.option("payment_plan") is not None


class TestCredits:
    def test_credit_shortage_offers_packages(self):
        decision = balance.evaluate(25, 10, BalanceKind.CREDIT)

        assert decision.message == "Insufficient credits. Required: 25, Available: 10"
        assert decision.option("top_up") is None
        purchase = decision.option("purchase_credits")
        assert purchase.data["minimum_credits"] == 15
        assert [p["credits"] for p in purchase.data["packages"]] == [10, 50, 100]
        assert [p["price"] for p in purchase.data["packages"]] == [
            Decimal("9.99"),
            Decimal("44.99"),
            Decimal("79.99"),
        ]
        assert [p["savings"] for p in purchase.data["packages"]] == [0, 10, 20]

    def test_fractional_credit_shortage_rounds_up(self):
        decision = balance.evaluate("2.5", "1", BalanceKind.CREDIT)
        assert decision.option("purchase_credits").data["minimum_credits"] == 2


class TestAccepted:
    @pytest.mark.parametrize("required, available", [(50, 80), (80, 80), (0, 0)])
    def test_enough_funds_is_accepted(self, required, available):
        decision = balance.evaluate(required, available, BalanceKind.WALLET)
        assert isinstance(decision, BalanceAccepted)
        assert decision.accepted is True
        assert decision.remaining == Decimal(available) - Decimal(required)


def test_shortage_payload_is_json_ready():
    payload = balance.evaluate(120, 80, BalanceKind.WALLET, context={"user_id": "u-1"}).to_payload()

    assert payload["error"] == "insufficient_balance"
    assert payload["balance_type"] == "wallet"
    assert payload["required_amount"] == "120"
    assert payload["shortage"] == "40"
    assert payload["context"] == {"user_id": "u-1"}
    top_up = payload["payment_options"][0]
    assert top_up["type"] == "top_up"
    assert top_up["suggested_amounts"] == ["40", "50", "100"]
    assert top_up["methods"] == ["card", "bank_transfer", "paypal"]


class TestBalanceGuard:
    def test_refund_uses_fixed_message(self):
        decision = BalanceGuard(currency="USD").for_refund(100, 20, business_id="biz-1")
        assert decision.message == "Insufficient business balance to process refund"
        assert decision.kind is BalanceKind.BUSINESS_BALANCE
        assert decision.context["business_id"] == "biz-1"

    def test_deposit_context(self):
        decision = BalanceGuard().for_deposit(
            50, 10, booking_ref="BK123", total_amount=Decimal("100.00")
        )
        assert decision.message == "Insufficient funds for deposit. Required: $50.00, Available: $10.00"
        assert decision.context == {
            "booking_ref": "BK123",
            "total_amount": "100.00",
            "deposit_percentage": 50,
        }

    def test_wallet_shortcut_accepts(self):
        assert BalanceGuard().for_wallet(10, 20, user_id="u-1").accepted is True

    def test_credit_shortcut(self):
        decision = BalanceGuard().for_credit(5, 2, user_id="u-1")
        assert decision.kind is BalanceKind.CREDIT
        assert decision.context == {"credit_type": "booking_credits", "user_id": "u-1"}
        assert decision.is_within_threshold(3)
        assert not decision.is_within_threshold(Decimal("2.99"))
