"""Pydantic schemas validating operation inputs"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from lot_financing.domain.models import FinancingType


class ContractTerms(BaseModel):
    """Terms supplied when a contract is drafted for a lot"""

    payment_term: int = Field(..., gt=0, description="Number of monthly installments")
    financing_type: FinancingType
    reserve_amount: Decimal = Field(..., ge=0, decimal_places=2)
    down_payment: Decimal = Field(..., ge=0, decimal_places=2)
    note: Optional[str] = None
