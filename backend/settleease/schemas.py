"""Pydantic schemas for ledger snapshots and computed settlements."""
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from settleease.services.numeric import to_amount

# Input amounts: numeric strings are parsed, anything unparseable becomes NaN.
Amount = Annotated[float, BeforeValidator(to_amount)]


class _WireModel(BaseModel):
    # Accept both the camelCase wire names and the snake_case attribute names.
    model_config = ConfigDict(populate_by_name=True)


# ----- People -----
class Person(_WireModel):
    id: str
    name: str = ""


# ----- Expense -----
class PayerShare(_WireModel):
    person_id: str = Field(alias="personId")
    amount: Amount


class ExpenseItemDetail(_WireModel):
    id: Optional[str] = None
    name: str
    price: Amount
    shared_by: list[str] = Field(default_factory=list, alias="sharedBy")
    category_name: Optional[str] = Field(default=None, alias="categoryName")


class CelebrationContribution(_WireModel):
    person_id: str = Field(alias="personId")
    amount: Amount


class Expense(_WireModel):
    id: str
    description: Optional[str] = None
    total_amount: Amount
    category: Optional[str] = None
    paid_by: list[PayerShare] = Field(default_factory=list)
    split_method: Literal["equal", "unequal", "itemwise"] = "equal"
    shares: list[PayerShare] = Field(default_factory=list)
    items: Optional[list[ExpenseItemDetail]] = None
    celebration_contribution: Optional[CelebrationContribution] = None
    exclude_from_settlement: bool = False
    created_at: Optional[datetime] = None


# ----- Settlement payments and overrides -----
class SettlementPayment(_WireModel):
    id: Optional[str] = None
    debtor_id: str
    creditor_id: str
    amount_settled: Amount
    settled_at: Optional[datetime] = None
    marked_by_user_id: Optional[str] = None
    notes: Optional[str] = None


class ManualSettlementOverride(_WireModel):
    id: Optional[str] = None
    debtor_id: str
    creditor_id: str
    amount: Amount
    is_active: bool = True
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ----- Computed output -----
class CalculatedTransaction(_WireModel):
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    amount: float
    contributing_expense_ids: Optional[list[str]] = Field(
        default=None, alias="contributingExpenseIds"
    )


# ----- Requests -----
class LedgerSnapshot(BaseModel):
    people: list[Person] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    settlement_payments: list[SettlementPayment] = Field(default_factory=list)
    manual_overrides: list[ManualSettlementOverride] = Field(default_factory=list)


class OverrideValidationRequest(LedgerSnapshot):
    override: ManualSettlementOverride


# ----- Responses -----
class PersonBalance(BaseModel):
    person_id: str
    name: Optional[str] = None
    # NaN (from unparseable input amounts) serializes as null.
    balance: Optional[float] = Field(description="Net balance; null when an input amount could not be parsed")


class BalancesResponse(BaseModel):
    balances: list[PersonBalance]


class SettlementSummary(BaseModel):
    balances: list[PersonBalance]
    simplified: list[CalculatedTransaction]
    pairwise: list[CalculatedTransaction]
    is_balanced: bool


class PersonSpending(BaseModel):
    person_id: str
    name: Optional[str] = None
    paid: float
    consumed: float


class DashboardStats(BaseModel):
    total_expenses: float
    expense_count: int
    excluded_count: int
    category_totals: dict[str, float]
    member_spending: list[PersonSpending]
    celebration_total: float
