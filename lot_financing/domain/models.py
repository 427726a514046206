"""Domain models - enums and pure Python dataclasses representing business values"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class ContractStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CLOSED = "closed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    PAID = "paid"
    REJECTED = "rejected"
    READJUSTMENT = "readjustment"


class FinancingType(str, Enum):
    DIRECT = "direct"
    BANK = "bank"
    CASH = "cash"


class PaymentType(str, Enum):
    RESERVATION = "reservation"
    DOWN_PAYMENT = "down_payment"
    INSTALLMENT = "installment"
    FULL = "full"
    ADVANCE = "advance"


class LedgerEntryType(str, Enum):
    DUE = "due"
    PAYMENT = "payment"
    INTEREST = "interest"
    ADJUSTMENT = "adjustment"
    RESERVATION = "reservation"
    DOWN_PAYMENT = "down_payment"
    INSTALLMENT = "installment"
    PREPAYMENT = "prepayment"


class LotStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


# Entry types that move the contract balance
BALANCE_ENTRY_TYPES = (LedgerEntryType.PAYMENT, LedgerEntryType.PREPAYMENT)

# Ledger entry written next to each scheduled payment
SCHEDULE_ENTRY_TYPES = {
    PaymentType.RESERVATION: LedgerEntryType.RESERVATION,
    PaymentType.DOWN_PAYMENT: LedgerEntryType.DOWN_PAYMENT,
    PaymentType.INSTALLMENT: LedgerEntryType.INSTALLMENT,
    PaymentType.FULL: LedgerEntryType.DUE,
    PaymentType.ADVANCE: LedgerEntryType.DUE,
}


@dataclass
class ScheduledPayment:
    """Single obligation produced by the schedule generator"""

    payment_type: PaymentType
    description: str
    due_date: date
    amount: Decimal


@dataclass
class PaymentRecord:
    """Due/payment dates of one payment, as seen by the credit scorer"""

    due_date: Optional[date]
    payment_date: Optional[date]


@dataclass
class ContractSnapshot:
    """Read-only view of a borrower's contract used for scoring"""

    amount: Decimal
    balance: Decimal
    created_on: date
    payments: List[PaymentRecord] = field(default_factory=list)


@dataclass
class CreditFactors:
    """Sub-scores feeding the weighted credit score"""

    payment_history: int
    credit_utilization: float
    credit_age: float
    total_accounts: int
