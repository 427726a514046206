"""Data access layer for contracts, payments and the contract ledger"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from lot_financing.infrastructure.database.models import Contract, ContractLedgerEntry, Payment, User
from lot_financing.domain.exceptions import LedgerError, NotFoundError
from lot_financing.domain.models import (
    BALANCE_ENTRY_TYPES,
    SCHEDULE_ENTRY_TYPES,
    ContractStatus,
    LedgerEntryType,
    PaymentStatus,
    ScheduledPayment,
)
from lot_financing.domain.money import ZERO, to_money


class LedgerRepository:
    """Append-only access to contract ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        contract: Contract,
        amount: Decimal,
        description: str,
        entry_type: LedgerEntryType,
        payment: Optional[Payment] = None,
        entry_date: Optional[datetime] = None,
    ) -> ContractLedgerEntry:
        """
        Record one financial movement.

        Sign convention: positive raises what is owed (scheduled dues,
        accrued interest, reversals), negative lowers it (payments,
        prepayments, interest collected).

        Raises:
            LedgerError: On zero amount, blank description or unknown type
        """
        if amount is None or to_money(amount) == ZERO:
            raise LedgerError("Ledger entry amount must be non-zero")
        if not description or not description.strip():
            raise LedgerError("Ledger entry description is required")
        try:
            kind = LedgerEntryType(entry_type)
        except ValueError:
            raise LedgerError(f"Unknown ledger entry type: {entry_type}") from None

        entry = ContractLedgerEntry(
            contract=contract,
            payment=payment,
            amount=to_money(amount),
            description=description,
            entry_type=kind.value,
        )
        if entry_date is not None:
            entry.entry_date = entry_date
        self.db.add(entry)
        self.db.flush()
        return entry

    def sum_entries(
        self,
        contract_id: uuid.UUID,
        entry_types: Optional[Iterable[LedgerEntryType]] = None,
    ) -> Decimal:
        """Sum of entry amounts for a contract, optionally restricted to some entry types"""
        query = self.db.query(func.coalesce(func.sum(ContractLedgerEntry.amount), 0)).filter(
            ContractLedgerEntry.contract_id == contract_id
        )
        if entry_types is not None:
            query = query.filter(ContractLedgerEntry.entry_type.in_([LedgerEntryType(t).value for t in entry_types]))
        return to_money(query.scalar())

    def reconcile_balance(self, contract: Contract) -> Decimal:
        """Balance derived from the ledger: amount plus all (negative) payment and prepayment entries"""
        return to_money(contract.amount) + self.sum_entries(contract.id, BALANCE_ENTRY_TYPES)

    def entries_for(self, contract_id: uuid.UUID) -> List[ContractLedgerEntry]:
        return (
            self.db.query(ContractLedgerEntry)
            .filter(ContractLedgerEntry.contract_id == contract_id)
            .order_by(ContractLedgerEntry.entry_date, ContractLedgerEntry.id)
            .all()
        )


class ContractRepository:
    """Repository for contracts"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, contract_id: uuid.UUID, for_update: bool = False) -> Contract:
        """Fetch a contract, locking its row when the caller is about to mutate it"""
        query = self.db.query(Contract).filter(Contract.id == contract_id)
        if for_update:
            query = query.with_for_update()
        contract = query.first()
        if contract is None:
            raise NotFoundError(f"Contract {contract_id} not found")
        return contract

    def active_for_lot(self, lot_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None) -> Optional[Contract]:
        query = self.db.query(Contract).filter(Contract.lot_id == lot_id, Contract.active.is_(True))
        if exclude_id is not None:
            query = query.filter(Contract.id != exclude_id)
        return query.first()

    def for_applicant(self, user_id: uuid.UUID) -> List[Contract]:
        return (
            self.db.query(Contract)
            .filter(Contract.applicant_user_id == user_id)
            .order_by(Contract.created_at)
            .all()
        )


class PaymentRepository:
    """Repository for scheduled payments"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)

    def get(self, payment_id: uuid.UUID, for_update: bool = False) -> Payment:
        query = self.db.query(Payment).filter(Payment.id == payment_id)
        if for_update:
            query = query.with_for_update()
        payment = query.first()
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def create_schedule(self, contract: Contract, schedule: List[ScheduledPayment]) -> List[Payment]:
        """Create the payments of a schedule, each paired with one ledger entry of the same amount"""
        payments = []
        for item in schedule:
            payment = Payment(
                contract=contract,
                description=item.description,
                payment_type=item.payment_type.value,
                amount=item.amount,
                interest_amount=ZERO,
                due_date=item.due_date,
                status=PaymentStatus.PENDING.value,
            )
            self.db.add(payment)
            self.db.flush()

            self.ledger.append(
                contract,
                item.amount,
                f"Due: {item.description}",
                SCHEDULE_ENTRY_TYPES[item.payment_type],
                payment=payment,
            )
            payments.append(payment)

        return payments

    def pending_for_contract(self, contract_id: uuid.UUID) -> List[Payment]:
        """Pending payments of a contract, latest due date first"""
        return (
            self.db.query(Payment)
            .filter(Payment.contract_id == contract_id, Payment.status == PaymentStatus.PENDING.value)
            .order_by(Payment.due_date.desc())
            .all()
        )

    def overdue_pending(self, today: date) -> List[Payment]:
        """Pending payments of approved contracts whose due date is strictly before `today`"""
        return (
            self.db.query(Payment)
            .join(Contract, Payment.contract_id == Contract.id)
            .filter(
                Contract.status == ContractStatus.APPROVED.value,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.due_date < today,
            )
            .order_by(Payment.due_date)
            .all()
        )


class UserRepository:
    """Repository for borrowers"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def borrowers(self) -> List[User]:
        return self.db.query(User).filter(User.role == "user").all()
