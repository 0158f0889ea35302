"""
Balance sufficiency values and remediation option arithmetic.

All money is Decimal. The rules below are the only place shortage,
top-up rounding, credit packages and installment plans are computed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from goreserve.core.enums import BalanceKind

CENT = Decimal("0.01")
DEFAULT_PLAN_THRESHOLD = Decimal("500")
DOWN_PAYMENT_RATE = Decimal("0.3")
INSTALLMENT_MONTHS = (3, 6, 12)
TOP_UP_STEPS = (10, 50, 100)

TOP_UP_METHODS = ("card", "bank_transfer", "paypal")
DIRECT_PAYMENT_METHODS = ("card", "paypal", "google_pay", "apple_pay")

# (credits, price, savings percent)
CREDIT_PACKAGES: Tuple[Tuple[int, Decimal, int], ...] = (
    (10, Decimal("9.99"), 0),
    (50, Decimal("44.99"), 10),
    (100, Decimal("79.99"), 20),
)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def ceil_to(amount: Decimal, step: int) -> Decimal:
    """Round ``amount`` up to the next multiple of ``step``."""
    units = (amount / step).to_integral_value(rounding=ROUND_CEILING)
    return units * step


def money(value: Decimal) -> str:
    return f"{value.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


@dataclass(frozen=True)
class PaymentOption:
    type: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type}
        for key, value in self.data.items():
            payload[key] = _jsonable(value)
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class BalanceAccepted:
    required: Decimal
    available: Decimal
    kind: BalanceKind

    accepted = True

    @property
    def remaining(self) -> Decimal:
        return self.available - self.required


@dataclass(frozen=True)
class BalanceShortage:
    required: Decimal
    available: Decimal
    kind: BalanceKind
    message: str
    options: Tuple[PaymentOption, ...] = field(default_factory=tuple)
    context: Mapping[str, Any] = field(default_factory=dict)

    accepted = False

    @property
    def shortage(self) -> Decimal:
        return max(Decimal("0"), self.required - self.available)

    def option(self, option_type: str) -> Optional[PaymentOption]:
        for candidate in self.options:
            if candidate.type == option_type:
                return candidate
        return None

    def is_within_threshold(self, threshold: Any) -> bool:
        return self.shortage <= to_decimal(threshold)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": "insufficient_balance",
            "message": self.message,
            "balance_type": self.kind.value,
            "required_amount": _jsonable(self.required),
            "available_amount": _jsonable(self.available),
            "shortage": _jsonable(self.shortage),
            "payment_options": [option.to_payload() for option in self.options],
            "context": dict(self.context),
        }


BalanceDecision = Union[BalanceAccepted, BalanceShortage]


def suggested_top_ups(shortage: Decimal) -> Tuple[Decimal, ...]:
    return tuple(ceil_to(shortage, step) for step in TOP_UP_STEPS)


def installments(required: Decimal) -> Tuple[Dict[str, Any], ...]:
    return tuple(
        {
            "months": months,
            "monthly_payment": (required / months).quantize(CENT, rounding=ROUND_HALF_UP),
        }
        for months in INSTALLMENT_MONTHS
    )


def build_message(kind: BalanceKind, required: Decimal, available: Decimal, currency: str) -> str:
    shortage = max(Decimal("0"), required - available)
    symbol = "$" if currency == "USD" else f"{currency} "
    if kind is BalanceKind.WALLET:
        return (
            f"Insufficient wallet balance. Required: {symbol}{money(required)}, "
            f"Available: {symbol}{money(available)}, Short by: {symbol}{money(shortage)}"
        )
    if kind is BalanceKind.CREDIT:
        return f"Insufficient credits. Required: {required.normalize():f}, Available: {available.normalize():f}"
    if kind is BalanceKind.DEPOSIT:
        return (
            f"Insufficient funds for deposit. Required: {symbol}{money(required)}, "
            f"Available: {symbol}{money(available)}"
        )
    return (
        f"Insufficient business balance. Required: {symbol}{money(required)}, "
        f"Available: {symbol}{money(available)}"
    )


def payment_options(
    required: Decimal,
    available: Decimal,
    kind: BalanceKind,
    plan_threshold: Decimal = DEFAULT_PLAN_THRESHOLD,
) -> Tuple[PaymentOption, ...]:
    """Deterministic remediation options for a shortage of ``kind``."""
    shortage = max(Decimal("0"), required - available)
    options = []

    if kind is BalanceKind.WALLET:
        options.append(
            PaymentOption(
                "top_up",
                {
                    "minimum_amount": shortage,
                    "suggested_amounts": suggested_top_ups(shortage),
                    "methods": TOP_UP_METHODS,
                },
            )
        )

    options.append(
        PaymentOption("direct_payment", {"amount": required, "methods": DIRECT_PAYMENT_METHODS})
    )

    if kind is BalanceKind.CREDIT:
        options.append(
            PaymentOption(
                "purchase_credits",
                {
                    "minimum_credits": int(shortage.to_integral_value(rounding=ROUND_CEILING)),
                    "packages": tuple(
                        {"credits": credits, "price": price, "savings": savings}
                        for credits, price, savings in CREDIT_PACKAGES
                    ),
                },
            )
        )

    if required > plan_threshold:
        options.append(
            PaymentOption(
                "payment_plan",
                {
                    "installments": installments(required),
                    "down_payment": (required * DOWN_PAYMENT_RATE).quantize(
                        CENT, rounding=ROUND_HALF_UP
                    ),
                },
            )
        )

    return tuple(options)


def evaluate(
    required: Any,
    available: Any,
    kind: BalanceKind,
    context: Optional[Mapping[str, Any]] = None,
    currency: str = "USD",
    plan_threshold: Any = DEFAULT_PLAN_THRESHOLD,
    message: Optional[str] = None,
) -> BalanceDecision:
    """Shortage = max(0, required - available); no shortage means accepted."""
    required_amount = to_decimal(required)
    available_amount = to_decimal(available)
    if required_amount <= available_amount:
        return BalanceAccepted(required_amount, available_amount, kind)

    return BalanceShortage(
        required=required_amount,
        available=available_amount,
        kind=kind,
        message=message or build_message(kind, required_amount, available_amount, currency),
        options=payment_options(
            required_amount, available_amount, kind, to_decimal(plan_threshold)
        ),
        context=dict(context or {}),
    )
