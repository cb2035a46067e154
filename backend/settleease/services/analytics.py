"""Spending statistics for a ledger snapshot."""
from collections import defaultdict
from typing import Iterable

from settleease.schemas import DashboardStats, Expense, Person, PersonSpending

UNCATEGORIZED = "Uncategorized"


def _category_totals(expenses: list[Expense]) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for e in expenses:
        if e.split_method == "itemwise" and e.items:
            for item in e.items:
                cat = item.category_name or e.category or UNCATEGORIZED
                totals[cat] += item.price
        else:
            totals[e.category or UNCATEGORIZED] += e.total_amount
    return {cat: round(total, 2) for cat, total in totals.items()}


def summarize_expenses(people: Iterable[Person], expenses: Iterable[Expense]) -> DashboardStats:
    """
    Totals, category breakdown and per-person paid/consumed amounts.
    Expenses marked exclude_from_settlement are counted but otherwise ignored.
    """
    people = list(people)
    expenses = list(expenses)
    included = [e for e in expenses if not e.exclude_from_settlement]

    paid: dict[str, float] = defaultdict(float, {p.id: 0.0 for p in people})
    consumed: dict[str, float] = defaultdict(float, {p.id: 0.0 for p in people})
    celebration_total = 0.0
    for e in included:
        for payer in e.paid_by:
            paid[payer.person_id] += payer.amount
        for share in e.shares:
            consumed[share.person_id] += share.amount
        celebration = e.celebration_contribution
        if celebration and celebration.amount > 0:
            consumed[celebration.person_id] += celebration.amount
            celebration_total += celebration.amount

    names = {p.id: p.name for p in people}
    member_spending = [
        PersonSpending(
            person_id=pid,
            name=names.get(pid),
            paid=round(paid.get(pid, 0.0), 2),
            consumed=round(consumed.get(pid, 0.0), 2),
        )
        for pid in dict.fromkeys([*paid, *consumed])
    ]

    return DashboardStats(
        total_expenses=round(sum(e.total_amount for e in included), 2),
        expense_count=len(included),
        excluded_count=len(expenses) - len(included),
        category_totals=_category_totals(included),
        member_spending=member_spending,
        celebration_total=round(celebration_total, 2),
    )
