"""Settlements: balances, who owes whom, and spending stats for a ledger snapshot."""
import logging
import math

from fastapi import APIRouter

from settleease.schemas import (
    BalancesResponse, CalculatedTransaction, DashboardStats, LedgerSnapshot, PersonBalance,
    SettlementSummary,
)
from settleease.services.analytics import summarize_expenses
from settleease.services.settlement_calculator import (
    calculate_net_balances,
    calculate_pairwise_transactions,
    calculate_simplified_transactions,
    is_plan_balanced,
    verify_settlement_plan,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settlements", tags=["settlements"])


def _balance_rows(snapshot: LedgerSnapshot, balances: dict[str, float]) -> list[PersonBalance]:
    names = {p.id: p.name for p in snapshot.people}
    unparsed = [pid for pid, bal in balances.items() if not math.isfinite(bal)]
    if unparsed:
        logger.warning("Non-finite balances for %s; check their expense and payment amounts", ", ".join(unparsed))
    return [PersonBalance(person_id=pid, name=names.get(pid), balance=bal) for pid, bal in balances.items()]


def _net_balances(snapshot: LedgerSnapshot) -> dict[str, float]:
    return calculate_net_balances(snapshot.people, snapshot.expenses, snapshot.settlement_payments)


@router.post("/balances", response_model=BalancesResponse)
def get_balances(snapshot: LedgerSnapshot):
    return BalancesResponse(balances=_balance_rows(snapshot, _net_balances(snapshot)))


@router.post("/simplified", response_model=list[CalculatedTransaction])
def get_simplified(snapshot: LedgerSnapshot):
    return calculate_simplified_transactions(
        snapshot.people, snapshot.expenses, snapshot.settlement_payments, snapshot.manual_overrides,
    )


@router.post("/pairwise", response_model=list[CalculatedTransaction])
def get_pairwise(snapshot: LedgerSnapshot):
    return calculate_pairwise_transactions(snapshot.people, snapshot.expenses, snapshot.settlement_payments)


@router.post("/summary", response_model=SettlementSummary)
def get_summary(snapshot: LedgerSnapshot):
    balances = _net_balances(snapshot)
    simplified = calculate_simplified_transactions(
        snapshot.people, snapshot.expenses, snapshot.settlement_payments, snapshot.manual_overrides,
    )
    pairwise = calculate_pairwise_transactions(snapshot.people, snapshot.expenses, snapshot.settlement_payments)
    balanced = is_plan_balanced(verify_settlement_plan(balances, simplified))
    if not balanced:
        logger.warning("Settlement plan leaves residual balances (%d people)", len(balances))
    return SettlementSummary(
        balances=_balance_rows(snapshot, balances),
        simplified=simplified,
        pairwise=pairwise,
        is_balanced=balanced,
    )


@router.post("/dashboard", response_model=DashboardStats)
def get_dashboard(snapshot: LedgerSnapshot):
    return summarize_expenses(snapshot.people, snapshot.expenses)
