"""Unit tests for readjustment selection after capital repayments"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from lot_financing.domain.reallocation import select_for_readjustment


@dataclass
class Item:
    amount: Decimal
    due_date: date


def _five_installments():
    return [Item(Decimal("5000.00"), date(2024, month, 1)) for month in range(1, 6)]


def test_remaining_balance_drives_selection():
    """Balance 25000, repayment 20000: remaining 5000 marks only the latest payment"""
    pending = _five_installments()

    selected = select_for_readjustment(pending, Decimal("5000.00"))

    assert selected == [pending[-1]]


def test_selection_walks_latest_first():
    pending = _five_installments()

    selected = select_for_readjustment(pending, Decimal("12000.00"))

    assert [p.due_date for p in selected] == [date(2024, 5, 1), date(2024, 4, 1), date(2024, 3, 1)]


def test_input_order_does_not_matter():
    pending = list(reversed(_five_installments()))

    selected = select_for_readjustment(pending, Decimal("5000.00"))

    assert [p.due_date for p in selected] == [date(2024, 5, 1)]


def test_nothing_selected_when_fully_repaid():
    assert select_for_readjustment(_five_installments(), Decimal("0.00")) == []


def test_all_selected_when_remaining_exceeds_pending():
    pending = _five_installments()
    assert len(select_for_readjustment(pending, Decimal("30000.00"))) == 5
