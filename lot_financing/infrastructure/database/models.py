"""SQLAlchemy ORM models for contracts, payments and the contract ledger"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, ForeignKey, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from lot_financing.domain.models import ContractStatus, LotStatus, PaymentStatus

Base = declarative_base()

Money = Numeric(12, 2)


class User(Base):
    """Borrower, seller or admin"""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(Text, nullable=False)
    role = Column(String(20), nullable=False, default="user")
    credit_score = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contracts = relationship(
        "Contract",
        back_populates="applicant",
        foreign_keys="Contract.applicant_user_id",
    )


class Project(Base):
    """Development grouping lots; owns the overdue interest rate"""

    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    lots = relationship("Lot", back_populates="project", cascade="all, delete-orphan")


class Lot(Base):
    """Parcel of land sold under a contract"""

    __tablename__ = "lots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    price = Column(Money, nullable=False)
    override_price = Column(Money, nullable=True)
    status = Column(String(20), nullable=False, default=LotStatus.AVAILABLE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    project = relationship("Project", back_populates="lots")
    contracts = relationship("Contract", back_populates="lot")

    @property
    def effective_price(self) -> Decimal:
        return self.override_price if self.override_price is not None else self.price


class Contract(Base):
    """Financing agreement for one lot"""

    __tablename__ = "contracts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lot_id = Column(UUID(as_uuid=True), ForeignKey("lots.id"), nullable=False, index=True)
    applicant_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    payment_term = Column(Integer, nullable=True)
    financing_type = Column(String(20), nullable=True)
    amount = Column(Money, nullable=False)
    balance = Column(Money, nullable=False)
    reserve_amount = Column(Money, nullable=True)
    down_payment = Column(Money, nullable=True)
    status = Column(String(20), nullable=False, default=ContractStatus.PENDING.value, index=True)
    active = Column(Boolean, nullable=False, default=False)
    note = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    lot = relationship("Lot", back_populates="contracts")
    applicant = relationship("User", back_populates="contracts", foreign_keys=[applicant_user_id])
    creator = relationship("User", foreign_keys=[creator_id])
    payments = relationship(
        "Payment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="Payment.due_date",
    )
    ledger_entries = relationship(
        "ContractLedgerEntry",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractLedgerEntry.entry_date",
    )


class Payment(Base):
    """Scheduled obligation within a contract"""

    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    payment_type = Column(String(20), nullable=False)
    amount = Column(Money, nullable=False)
    paid_amount = Column(Money, nullable=True)
    interest_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    due_date = Column(Date, nullable=False, index=True)
    payment_date = Column(Date, nullable=True)
    receipt_url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("Contract", back_populates="payments")

    @property
    def has_receipt(self) -> bool:
        return bool(self.receipt_url)


class ContractLedgerEntry(Base):
    """Immutable financial movement against a contract"""

    __tablename__ = "contract_ledger_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(UUID(as_uuid=True), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Money, nullable=False)
    description = Column(Text, nullable=False)
    entry_type = Column(String(20), nullable=False, index=True)
    entry_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("Contract", back_populates="ledger_entries")
    payment = relationship("Payment")
