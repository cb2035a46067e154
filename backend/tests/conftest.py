import pytest
from fastapi.testclient import TestClient

from settleease.main import app
from settleease.schemas import Expense, ManualSettlementOverride, Person, SettlementPayment


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def people():
    return [
        Person(id="person-a", name="Alice"),
        Person(id="person-b", name="Bob"),
        Person(id="person-c", name="Charlie"),
        Person(id="person-d", name="Dana"),
    ]


@pytest.fixture
def make_expense():
    def _make(expense_id, paid_by, shares, total_amount=None, **extra):
        return Expense(
            id=expense_id,
            total_amount=sum(paid_by.values()) if total_amount is None else total_amount,
            paid_by=[{"personId": pid, "amount": amt} for pid, amt in paid_by.items()],
            shares=[{"personId": pid, "amount": amt} for pid, amt in shares.items()],
            **extra,
        )
    return _make


@pytest.fixture
def make_payment():
    def _make(debtor_id, creditor_id, amount):
        return SettlementPayment(
            debtor_id=debtor_id,
            creditor_id=creditor_id,
            amount_settled=amount,
            settled_at="2026-01-05T10:00:00Z",
            marked_by_user_id="user-1",
        )
    return _make


@pytest.fixture
def make_override():
    def _make(debtor_id, creditor_id, amount, is_active=True):
        return ManualSettlementOverride(
            debtor_id=debtor_id, creditor_id=creditor_id, amount=amount, is_active=is_active,
        )
    return _make


@pytest.fixture
def dinner(make_expense):
    """Alice pays 90, split three ways with Bob and Charlie."""
    return make_expense(
        "exp-dinner",
        {"person-a": 90},
        {"person-a": 30, "person-b": 30, "person-c": 30},
    )
