"""Expiration sweep report."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class SweepReport:
    expiration_hours: int
    dry_run: bool = False
    eligible_refs: Tuple[str, ...] = field(default_factory=tuple)
    cancelled_refs: Tuple[str, ...] = field(default_factory=tuple)
    failed_refs: Tuple[str, ...] = field(default_factory=tuple)
    total_amount_released: Decimal = Decimal("0.00")
    release_failures: int = 0
    notify_failures: int = 0

    @property
    def eligible_count(self) -> int:
        return len(self.eligible_refs)

    @property
    def cancelled_count(self) -> int:
        return len(self.cancelled_refs)

    @property
    def failed_count(self) -> int:
        return len(self.failed_refs)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_refs)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "expiration_hours": self.expiration_hours,
            "dry_run": self.dry_run,
            "eligible_count": self.eligible_count,
            "cancelled_count": self.cancelled_count,
            "failed_count": self.failed_count,
            "total_amount_released": str(self.total_amount_released),
            "eligible_refs": list(self.eligible_refs),
            "cancelled_refs": list(self.cancelled_refs),
            "failed_refs": list(self.failed_refs),
            "release_failures": self.release_failures,
            "notify_failures": self.notify_failures,
        }
