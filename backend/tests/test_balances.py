import math

import pytest

from settleease.schemas import Expense
from settleease.services.settlement_calculator import calculate_net_balances


def test_empty_people_gives_empty_balances():
    assert calculate_net_balances([], [], []) == {}


def test_known_people_start_at_zero(people):
    balances = calculate_net_balances(people, [], [])
    assert balances == {"person-a": 0, "person-b": 0, "person-c": 0, "person-d": 0}


def test_equal_split(people, dinner):
    balances = calculate_net_balances(people, [dinner], [])
    assert balances["person-a"] == pytest.approx(60)
    assert balances["person-b"] == pytest.approx(-30)
    assert balances["person-c"] == pytest.approx(-30)
    assert balances["person-d"] == 0


def test_empty_paid_by_only_debits(people, make_expense):
    expense = make_expense("exp-1", {}, {"person-a": 50, "person-b": 50}, total_amount=100)
    balances = calculate_net_balances(people, [expense], [])
    assert balances["person-a"] == -50
    assert balances["person-b"] == -50


def test_multi_payer(people, make_expense):
    expense = make_expense(
        "exp-multi",
        {"person-a": 60, "person-b": 40},
        {"person-a": 33.33, "person-b": 33.33, "person-c": 33.34},
    )
    balances = calculate_net_balances(people, [expense], [])
    assert balances["person-a"] == pytest.approx(26.67)
    assert balances["person-b"] == pytest.approx(6.67)
    assert balances["person-c"] == pytest.approx(-33.34)


def test_celebration_contribution_is_extra_debit(people, make_expense):
    expense = make_expense(
        "exp-birthday",
        {"person-a": 200},
        {"person-a": 50, "person-b": 50, "person-c": 50},
        celebration_contribution={"personId": "person-a", "amount": 50},
    )
    balances = calculate_net_balances(people, [expense], [])
    assert balances["person-a"] == 100
    assert balances["person-b"] == -50
    assert balances["person-c"] == -50


def test_celebration_contribution_is_one_sided(people, make_expense):
    expense = make_expense(
        "exp-treat",
        {"person-a": 90},
        {"person-a": 30, "person-b": 30, "person-c": 30},
        celebration_contribution={"personId": "person-b", "amount": 20},
    )
    balances = calculate_net_balances(people, [expense], [])
    assert sum(balances.values()) == pytest.approx(-20)


def test_excluded_expense_is_skipped(people, dinner, make_expense):
    excluded = make_expense(
        "exp-excluded",
        {"person-a": 500},
        {"person-a": 250, "person-b": 250},
        exclude_from_settlement=True,
    )
    balances = calculate_net_balances(people, [dinner, excluded], [])
    assert balances["person-a"] == pytest.approx(60)
    assert balances["person-b"] == pytest.approx(-30)


def test_settlement_payment_moves_both_sides_toward_zero(people, dinner, make_payment):
    balances = calculate_net_balances(people, [dinner], [make_payment("person-b", "person-a", 30)])
    assert balances["person-a"] == pytest.approx(30)
    assert balances["person-b"] == pytest.approx(0)


def test_unknown_ids_are_tracked(people, make_expense, make_payment):
    expense = make_expense("exp-guest", {"person-a": 40}, {"guest": 40})
    balances = calculate_net_balances(people, [expense], [make_payment("guest", "stranger", 10)])
    assert balances["guest"] == -30
    assert balances["stranger"] == -10
    assert balances["person-a"] == 40


def test_numeric_strings_are_coerced(people):
    expense = Expense.model_validate({
        "id": "exp-str",
        "total_amount": "20",
        "paid_by": [{"personId": "person-a", "amount": "20.50"}],
        "shares": [{"personId": "person-b", "amount": "20.50"}],
    })
    balances = calculate_net_balances(people, [expense], [])
    assert balances["person-a"] == 20.5
    assert balances["person-b"] == -20.5


def test_nan_amount_propagates(people, make_expense):
    expense = make_expense("exp-nan", {"person-a": float("nan")}, {"person-b": 10}, total_amount=10)
    balances = calculate_net_balances(people, [expense], [])
    assert math.isnan(balances["person-a"])
    assert balances["person-b"] == -10


def test_conservation_across_expenses_and_settlements(people, make_expense, make_payment):
    expenses = [
        make_expense("trip-hotel", {"person-a": 3000},
                     {"person-a": 750, "person-b": 750, "person-c": 750, "person-d": 750}),
        make_expense("trip-fuel", {"person-b": 300, "person-c": 200},
                     {"person-a": 125, "person-b": 125, "person-c": 125, "person-d": 125}),
    ]
    balances = calculate_net_balances(people, expenses, [make_payment("person-b", "person-a", 500)])
    assert sum(balances.values()) == pytest.approx(0, abs=0.01)


def test_same_input_same_output(people, dinner, make_payment):
    payments = [make_payment("person-b", "person-a", 10)]
    assert calculate_net_balances(people, [dinner], payments) == calculate_net_balances(people, [dinner], payments)


def test_unparseable_amount_becomes_nan(people):
    expense = Expense.model_validate({
        "id": "exp-typo",
        "total_amount": "ten",
        "paid_by": [{"personId": "person-a", "amount": "ten"}],
        "shares": [{"personId": "person-b", "amount": 10}],
    })
    assert math.isnan(expense.total_amount)
    balances = calculate_net_balances(people, [expense], [])
    assert math.isnan(balances["person-a"])
    assert balances["person-b"] == -10
