"""Tolerances and amount coercion shared by the settlement calculations."""
import math

# Balance classification and transaction emission (currency cents).
BALANCE_EPSILON = 0.01
# Expense and obligation materiality checks.
MATERIALITY_EPSILON = 0.001


def to_amount(value) -> float:
    """Coerce a numeric field to float.

    Unparseable input becomes NaN rather than zero so that bad data shows up
    in the computed balances instead of being silently dropped.
    """
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def is_debtor(balance: float) -> bool:
    return balance < -BALANCE_EPSILON


def is_creditor(balance: float) -> bool:
    return balance > BALANCE_EPSILON
