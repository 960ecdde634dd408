"""
Credit Service Data Models

Pydantic models for credit accounts, transactions and ledger results.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ====================
# Enums
# ====================

class TransactionType(str, Enum):
    """Ledger transaction types"""
    ALLOCATION = "allocation"
    USAGE = "usage"
    PURCHASE = "purchase"
    BONUS = "bonus"
    REFUND = "refund"


# Types accepted by add_credits
CREDIT_ADDITION_TYPES = frozenset({
    TransactionType.PURCHASE,
    TransactionType.BONUS,
    TransactionType.REFUND,
})


# ====================
# Core Models
# ====================

class CreditAccount(BaseModel):
    """One member's credit balance"""
    user_id: str
    balance: int = Field(..., ge=0)
    monthly_allocation: int = Field(default=0, ge=0)
    last_allocation_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreditTransaction(BaseModel):
    """Immutable ledger entry"""
    id: str
    user_id: str
    amount: int = Field(..., description="Signed amount; usage is negative")
    transaction_type: TransactionType
    description: Optional[str] = None
    service_request_id: Optional[str] = None
    balance_after: int
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def is_unlimited_usage(self) -> bool:
        return bool(self.metadata.get("unlimited"))


# ====================
# Request Models
# ====================

class UseCreditRequest(BaseModel):
    """Debit request"""
    amount: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    service_request_id: Optional[str] = None


class AddCreditsRequest(BaseModel):
    """Credit request"""
    amount: int = Field(..., gt=0)
    transaction_type: TransactionType
    description: str = Field(..., min_length=1, max_length=500)


# ====================
# Response Models
# ====================

class CreditOperationResult(BaseModel):
    """Ledger mutation result"""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    balance: Optional[int] = None
    is_unlimited: bool = False
    transaction: Optional[CreditTransaction] = None


class CreditBalanceResponse(BaseModel):
    """Balance lookup"""
    user_id: str
    has_account: bool
    balance: int = 0
    monthly_allocation: int = 0
    is_unlimited: bool = False
    last_allocation_at: Optional[datetime] = None


class CreditCheckResult(BaseModel):
    """Sufficiency check"""
    sufficient: bool
    balance: int
    is_unlimited: bool


class TransactionListResponse(BaseModel):
    """Recent transactions, newest first"""
    transactions: List[CreditTransaction]
    count: int


class ReconciliationReport(BaseModel):
    """Ledger sum against account balance"""
    user_id: str
    balance: int
    ledger_sum: int
    unlimited_usage_total: int = 0
    transaction_count: int = 0
    balanced: bool


class MonthlyResetResult(BaseModel):
    """Monthly reset summary"""
    processed: int = 0
    skipped: int = 0
    errors: int = 0


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    timestamp: str
    dependencies: Dict[str, str] = Field(default_factory=dict)
