"""Pytest fixtures for testing"""

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from lot_financing.domain.events import Notification
from lot_financing.domain.models import FinancingType, LotStatus
from lot_financing.domain.schemas import ContractTerms
from lot_financing.infrastructure.database.models import Base, Contract, Lot, Project, User
from lot_financing.services.contracts import approve_contract, create_contract


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CONTRACT_DATE = datetime(2024, 1, 15, 10, 0)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def project(db: Session) -> Project:
    project = Project(name="Lomas", interest_rate=Decimal("12.00"))
    db.add(project)
    db.commit()
    return project


@pytest.fixture
def lot(db: Session, project: Project) -> Lot:
    lot = Lot(project=project, name="Lot 7", price=Decimal("300000.00"), status=LotStatus.RESERVED.value)
    db.add(lot)
    db.commit()
    return lot


@pytest.fixture
def borrower(db: Session) -> User:
    user = User(email="borrower@example.com", full_name="Ana Borrower")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def seller(db: Session) -> User:
    user = User(email="seller@example.com", full_name="Sam Seller", role="seller")
    db.add(user)
    db.commit()
    return user


def make_lot(db: Session, project: Project, price: str, name: str = "Lot") -> Lot:
    lot = Lot(project=project, name=name, price=Decimal(price), status=LotStatus.RESERVED.value)
    db.add(lot)
    db.commit()
    return lot


def make_contract(
    db: Session,
    lot: Lot,
    applicant: User,
    reserve_amount: str = "50000.00",
    down_payment: str = "210000.00",
    payment_term: int = 12,
    financing_type: FinancingType = FinancingType.DIRECT,
    creator: User | None = None,
) -> Contract:
    terms = ContractTerms(
        payment_term=payment_term,
        financing_type=financing_type,
        reserve_amount=Decimal(reserve_amount),
        down_payment=Decimal(down_payment),
    )
    return create_contract(db, lot, applicant, terms, creator=creator, now=CONTRACT_DATE)


def make_approved_contract(db: Session, lot: Lot, applicant: User, **terms) -> Contract:
    contract = make_contract(db, lot, applicant, **terms)
    approve_contract(db, contract.id, now=CONTRACT_DATE, today=CONTRACT_DATE.date())
    db.refresh(contract)
    return contract


@pytest.fixture
def contract(db: Session, lot: Lot, borrower: User) -> Contract:
    """Pending direct contract: 300000 with 50000 reserve, 210000 down, 12 installments"""
    return make_contract(db, lot, borrower)


@pytest.fixture
def approved_contract(db: Session, lot: Lot, borrower: User) -> Contract:
    return make_approved_contract(db, lot, borrower)


class RecordingSink:
    """Notification sink keeping everything it was asked to send"""

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)


class RecordingJobQueue:
    def __init__(self) -> None:
        self.jobs: List[tuple] = []

    async def enqueue(self, job: str, payload: dict) -> None:
        self.jobs.append((job, payload))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def job_queue() -> RecordingJobQueue:
    return RecordingJobQueue()
