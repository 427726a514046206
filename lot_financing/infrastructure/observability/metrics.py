"""Prometheus metrics for contract lifecycle, interest accrual and side-effect delivery"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Lifecycle metrics
contract_transition_counter = Counter(
    "lot_financing_contract_transitions_total",
    "Contract state transitions",
    ["event"],  # submit | approve | reject | cancel | close
)

payment_transition_counter = Counter(
    "lot_financing_payment_transitions_total",
    "Payment state transitions",
    ["event"],  # submit | approve | reject | undo | mark_readjustment
)

# Capital repayment metrics
capital_repayment_histogram = Histogram(
    "lot_financing_capital_repayment_amount",
    "Capital repayment amounts",
    buckets=[1_000, 5_000, 10_000, 25_000, 50_000, 100_000, 250_000],
)

readjusted_payments_counter = Counter(
    "lot_financing_readjusted_payments_total",
    "Payments marked for readjustment after capital repayments",
)

# Batch metrics
overdue_interest_counter = Counter(
    "lot_financing_overdue_interest_updates_total",
    "Overdue interest accrual outcomes per payment",
    ["outcome"],  # updated | skipped | failed
)

overdue_reminder_counter = Counter(
    "lot_financing_overdue_reminders_total",
    "Overdue payment reminders sent to borrowers",
)

# Side-effect delivery
dispatch_failure_counter = Counter(
    "lot_financing_dispatch_failures_total",
    "Notifications or job requests that could not be delivered",
    ["kind"],  # notification | job
)

webhook_latency_histogram = Histogram(
    "notification_webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def record_contract_transition(event: str) -> None:
    contract_transition_counter.labels(event=event).inc()


def record_payment_transition(event: str, count: int = 1) -> None:
    payment_transition_counter.labels(event=event).inc(count)


def record_capital_repayment(amount: Decimal, readjusted: int) -> None:
    """Record repayment size and how many installments it made stale"""
    capital_repayment_histogram.observe(float(amount))
    readjusted_payments_counter.inc(readjusted)
