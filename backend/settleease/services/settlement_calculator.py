"""Settle a shared ledger: net balances, simplified transfers and pairwise debts.

All functions here are pure: they take full snapshots of people, expenses and
settlement payments and recompute everything on every call.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from settleease.schemas import (
    CalculatedTransaction,
    Expense,
    ManualSettlementOverride,
    Person,
    SettlementPayment,
)
from settleease.services.numeric import (
    BALANCE_EPSILON,
    MATERIALITY_EPSILON,
    is_creditor,
    is_debtor,
)

logger = logging.getLogger(__name__)


def _settled_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if not e.exclude_from_settlement]


def calculate_net_balances(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
) -> dict[str, float]:
    """
    person_id -> net balance (positive = is owed money, negative = owes money).

    Every person in `people` gets an entry, even with no activity. Ids that only
    appear in expenses or payments are added as they are met.
    """
    balances: dict[str, float] = defaultdict(float, {p.id: 0.0 for p in people})

    for e in _settled_expenses(expenses):
        for payer in e.paid_by:
            balances[payer.person_id] += payer.amount
        for share in e.shares:
            balances[share.person_id] -= share.amount
        celebration = e.celebration_contribution
        if celebration and celebration.amount > 0:
            balances[celebration.person_id] -= celebration.amount

    for p in settlement_payments:
        amount = p.amount_settled
        balances[p.debtor_id] += amount
        balances[p.creditor_id] -= amount

    return dict(balances)


def apply_manual_overrides(
    balances: dict[str, float],
    manual_overrides: Optional[Iterable[ManualSettlementOverride]],
) -> tuple[list[CalculatedTransaction], dict[str, float]]:
    """
    Route part of the settlement through the pairs named by active overrides.

    Returns the forced transactions and the balances left for the optimizer.
    An override is only honoured while its debtor still owes and its creditor is
    still owed, and never for more than either side's remaining balance.
    """
    remaining = dict(balances)
    forced: list[CalculatedTransaction] = []
    for override in manual_overrides or []:
        if not override.is_active:
            continue
        debtor_balance = remaining.get(override.debtor_id, 0.0)
        creditor_balance = remaining.get(override.creditor_id, 0.0)
        if not (is_debtor(debtor_balance) and is_creditor(creditor_balance)):
            logger.debug(
                "Skipping override %s -> %s: balances %.2f / %.2f",
                override.debtor_id, override.creditor_id, debtor_balance, creditor_balance,
            )
            continue
        # Override amount first: a NaN amount makes min() NaN and the override is skipped.
        amount = min(override.amount, abs(debtor_balance), creditor_balance)
        if amount > BALANCE_EPSILON:
            forced.append(
                CalculatedTransaction(from_id=override.debtor_id, to_id=override.creditor_id, amount=amount)
            )
            remaining[override.debtor_id] = debtor_balance + amount
            remaining[override.creditor_id] = creditor_balance - amount
    return forced, remaining


def simplify_balances(balances: dict[str, float]) -> list[CalculatedTransaction]:
    """
    Greedy min-cash-flow: repeatedly match the largest debtor with the largest
    creditor. A heuristic, not a guaranteed minimum transaction count.

    Ties on amount keep the insertion order of `balances` (the sorts are stable).
    """
    debtors = [[pid, -bal] for pid, bal in balances.items() if is_debtor(bal)]
    creditors = [[pid, bal] for pid, bal in balances.items() if is_creditor(bal)]
    debtors.sort(key=lambda x: -x[1])
    creditors.sort(key=lambda x: -x[1])
    logger.debug("Simplifying %d debtors against %d creditors", len(debtors), len(creditors))

    out: list[CalculatedTransaction] = []
    i, j = 0, 0
    while i < len(debtors) and j < len(creditors):
        debtor, creditor = debtors[i], creditors[j]
        transfer = min(debtor[1], creditor[1])
        if transfer > BALANCE_EPSILON:
            out.append(CalculatedTransaction(from_id=debtor[0], to_id=creditor[0], amount=transfer))
        debtor[1] -= transfer
        creditor[1] -= transfer
        if debtor[1] < BALANCE_EPSILON:
            i += 1
        if creditor[1] < BALANCE_EPSILON:
            j += 1
    return out


def calculate_simplified_transactions(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
    manual_overrides: Optional[Iterable[ManualSettlementOverride]] = None,
) -> list[CalculatedTransaction]:
    """Minimal list of transfers to settle up, forced override transfers first."""
    balances = calculate_net_balances(people, expenses, settlement_payments)
    forced, remaining = apply_manual_overrides(balances, manual_overrides)
    return forced + simplify_balances(remaining)


@dataclass
class _PairDebt:
    amount: float = 0.0
    expense_ids: list[str] = field(default_factory=list)

    def add(self, amount: float, expense_id: str) -> None:
        self.amount += amount
        if expense_id not in self.expense_ids:
            self.expense_ids.append(expense_id)


def _raw_pairwise_debts(expenses: Iterable[Expense]) -> dict[str, dict[str, _PairDebt]]:
    """debtor_id -> creditor_id -> debt attributable to specific expenses."""
    raw: dict[str, dict[str, _PairDebt]] = {}
    for e in _settled_expenses(expenses):
        if e.total_amount <= MATERIALITY_EPSILON or not e.paid_by:
            continue

        obligations: dict[str, float] = defaultdict(float)
        for share in e.shares:
            obligations[share.person_id] += share.amount
        celebration = e.celebration_contribution
        if celebration and celebration.amount > MATERIALITY_EPSILON:
            obligations[celebration.person_id] += celebration.amount

        total_paid = sum(p.amount for p in e.paid_by)
        if total_paid <= MATERIALITY_EPSILON:
            continue

        # Each payer is owed a slice of every obligation proportional to what they fronted.
        for debtor_id, owed in obligations.items():
            if owed <= MATERIALITY_EPSILON:
                continue
            for payer in e.paid_by:
                if payer.person_id == debtor_id:
                    continue
                owed_to_payer = owed * (payer.amount / total_paid)
                if owed_to_payer > MATERIALITY_EPSILON:
                    pair = raw.setdefault(debtor_id, {}).setdefault(payer.person_id, _PairDebt())
                    pair.add(owed_to_payer, e.id)
    return raw


def calculate_pairwise_transactions(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlement_payments: Iterable[SettlementPayment],
) -> list[CalculatedTransaction]:
    """
    Direct debts between specific people, each citing the expenses behind it,
    net of settlement payments made for that exact debtor -> creditor pair.

    A debtor whose total settlement payments (to anyone, net of payments
    received) cover their total obligation is treated as fully settled and
    gets no transactions at all, even if individual pairs were not matched.
    """
    raw = _raw_pairwise_debts(expenses)

    net_settled: dict[str, float] = defaultdict(float)
    settled_pairs: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for p in settlement_payments:
        amount = p.amount_settled
        net_settled[p.debtor_id] += amount
        net_settled[p.creditor_id] -= amount
        settled_pairs[p.debtor_id][p.creditor_id] += amount

    out: list[CalculatedTransaction] = []
    for debtor_id, creditors in raw.items():
        total_owed = sum(d.amount for d in creditors.values())
        if net_settled.get(debtor_id, 0.0) >= total_owed - BALANCE_EPSILON:
            logger.debug("%s has settled %.2f of %.2f owed; no pairwise debts", debtor_id,
                         net_settled.get(debtor_id, 0.0), total_owed)
            continue
        paid_to = settled_pairs.get(debtor_id, {})
        for creditor_id, debt in creditors.items():
            if debt.amount <= 0:
                continue
            net_amount = debt.amount - paid_to.get(creditor_id, 0.0)
            if net_amount > BALANCE_EPSILON:
                out.append(CalculatedTransaction(
                    from_id=debtor_id,
                    to_id=creditor_id,
                    amount=net_amount,
                    contributing_expense_ids=list(debt.expense_ids),
                ))
    return out


def verify_settlement_plan(
    balances: dict[str, float],
    transactions: Iterable[CalculatedTransaction],
) -> dict[str, float]:
    """Balances left over after every transaction in the plan has been paid."""
    residuals: dict[str, float] = defaultdict(float, balances)
    for t in transactions:
        residuals[t.from_id] += t.amount
        residuals[t.to_id] -= t.amount
    return dict(residuals)


def is_plan_balanced(residuals: dict[str, float], tolerance: float = 2 * BALANCE_EPSILON) -> bool:
    # Each greedy step may strand just under one cent per side.
    return all(abs(r) < tolerance for r in residuals.values())
