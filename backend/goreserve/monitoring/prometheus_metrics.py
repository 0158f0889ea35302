"""
Prometheus metrics module for GoReserve.

Service timings are fed by @BaseService.measure_operation; the domain
counters below track conflict outcomes, balance shortages, expiration
sweeps and booking lock contention.
"""

from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "goreserve_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "goreserve_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "goreserve_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_decisions_total = Counter(
    "goreserve_booking_decisions_total",
    "Booking request evaluations by outcome",
    ["outcome"],  # accepted | <conflict kind>
    registry=REGISTRY,
)

balance_shortages_total = Counter(
    "goreserve_balance_shortages_total",
    "Balance evaluations that produced a shortage",
    ["balance_kind"],
    registry=REGISTRY,
)

expiration_sweep_total = Counter(
    "goreserve_expiration_sweep_total",
    "Reservations processed by the expiration sweeper",
    ["outcome"],  # cancelled | failed | release_failed | notify_failed
    registry=REGISTRY,
)

booking_lock_total = Counter(
    "goreserve_booking_lock_total",
    "Booking lock acquire/release events",
    ["action", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'ConflictChecker')
            operation: Operation/method name (e.g., 'evaluate_slot')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_booking_decision(outcome: str) -> None:
        booking_decisions_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_balance_shortage(balance_kind: str) -> None:
        balance_shortages_total.labels(balance_kind=balance_kind).inc()

    @staticmethod
    def record_sweep_outcome(outcome: str, count: int = 1) -> None:
        if count > 0:
            expiration_sweep_total.labels(outcome=outcome).inc(count)

    @staticmethod
    def record_booking_lock(action: str, outcome: str) -> None:
        booking_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Return the text exposition of the registry."""
        return bytes(generate_latest(REGISTRY))


prometheus_metrics = PrometheusMetrics()
