"""
Tests for the budget, expense, balance and exchange rate endpoints.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from divvy.core.config import settings
from divvy.models import Expense, ExpenseSplit, ExchangeRate, Group, GroupMember, User
from divvy.services.budget_limit import SqlBudgetStore


@pytest.fixture(autouse=True)
def no_fx_key(monkeypatch):
    """Background refreshes must never reach the real provider."""
    monkeypatch.setattr(settings, "FX_API_KEY", "")


@pytest.fixture
def seeded(db):
    today = date.today()
    db.add_all([
        User(id=1, full_name="Ana", email="ana@example.com", monthly_budget=Decimal("500"), default_currency="USD"),
        User(id=2, full_name="Ben", email="ben@example.com", monthly_budget=Decimal("300"), default_currency="USD"),
        User(id=3, full_name="Cy", email="cy@example.com"),
        Group(id=1, name="Flat 4B"),
    ])
    db.flush()
    db.add_all([
        GroupMember(group_id=1, user_id=1, role="admin"),
        GroupMember(group_id=1, user_id=2),
    ])
    
    personal = Expense(id=1, group_id=1, paid_by=1, date=today, amount=Decimal("120"),
                       currency="USD", category="Groceries", description="Weekly shop")
    personal.splits = [ExpenseSplit(user_id=1, share_amount=Decimal("120"))]
    shared = Expense(id=2, group_id=1, paid_by=2, date=today, amount=Decimal("90"),
                     currency="USD", category="Utilities", description="Power bill")
    shared.splits = [
        ExpenseSplit(user_id=1, share_amount=Decimal("45")),
        ExpenseSplit(user_id=2, share_amount=Decimal("45")),
    ]
    db.add_all([personal, shared])
    db.add(ExchangeRate(from_currency="USD", to_currency="EUR", rate=Decimal("0.9"), fetched_at=datetime.utcnow()))
    db.commit()
    return db


def test_health(client):
    """Test the health endpoints."""
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").status_code == 200


def test_budget_summary_current_month(client, seeded):
    """Test the summary of the current month."""
    response = client.get("/api/budget/summary", params={"user_id": 1})
    assert response.status_code == 200
    data = response.json()
    
    assert data["period"] == "current"
    assert data["year"] == date.today().year
    assert Decimal(data["total_spent"]) == Decimal("165")
    assert Decimal(data["remaining"]) == Decimal("335")
    assert data["percentage_used"] == 33.0
    assert data["expense_count"] == 2
    assert [c["name"] for c in data["categories"]] == ["Groceries", "Utilities"]
    assert len(data["monthly_series"]) == 3
    assert data["monthly_series"][0]["is_current"] is True


def test_budget_summary_custom_without_month(client, seeded):
    """Test that a custom period with no month is empty."""
    response = client.get("/api/budget/summary", params={"user_id": 1, "period": "custom"})
    assert response.status_code == 200
    data = response.json()
    assert data["year"] is None
    assert data["expense_count"] == 0


def test_budget_summary_rejects_half_a_month(client, seeded):
    """Test that year and month must come together."""
    response = client.get("/api/budget/summary", params={"user_id": 1, "period": "custom", "year": 2024})
    assert response.status_code == 422


def test_unknown_user(client, seeded):
    """Test that an unknown user is a 404."""
    assert client.get("/api/budget", params={"user_id": 99}).status_code == 404


def test_update_budget(client, seeded):
    """Test setting the monthly budget."""
    response = client.put("/api/budget", params={"user_id": 1}, json={"monthly_budget": "650"})
    assert response.status_code == 200
    assert Decimal(response.json()["monthly_budget"]) == Decimal("650")
    
    response = client.get("/api/budget", params={"user_id": 1})
    assert Decimal(response.json()["monthly_budget"]) == Decimal("650")


def test_update_budget_rejects_negative(client, seeded):
    """Test that a negative budget is refused."""
    response = client.put("/api/budget", params={"user_id": 1}, json={"monthly_budget": "-5"})
    assert response.status_code == 422


def test_list_expenses(client, seeded):
    """Test listing this month's expenses with the user's share."""
    response = client.get("/api/expenses", params={"user_id": 1})
    assert response.status_code == 200
    expenses = response.json()["expenses"]
    
    by_id = {e["id"]: e for e in expenses}
    assert by_id["1"]["rule"] == "personal_own"
    assert by_id["1"]["share_display"] == "$120"
    assert by_id["2"]["rule"] == "even_split"
    assert Decimal(by_id["2"]["share"]) == Decimal("45")


def test_list_months(client, seeded):
    """Test the month picker."""
    response = client.get("/api/expenses/months", params={"user_id": 1})
    months = response.json()
    assert months[0]["is_current"] is True
    assert months[0]["month"] == date.today().month


def test_balances(client, seeded):
    """Test what the user owes housemates."""
    response = client.get("/api/balances", params={"user_id": 1})
    assert response.status_code == 200
    data = response.json()
    assert data["balances"] == [{"user_id": 2, "amount": "45.00"}]
    assert Decimal(data["you_owe"]) == Decimal("45")
    assert data["transfers"] == [{"from_user_id": 1, "to_user_id": 2, "amount": "45.00"}]


def test_recurring_requires_membership(client, seeded):
    """Test that outsiders cannot run a group's recurring expenses."""
    response = client.post("/api/expenses/recurring/1", params={"user_id": 3})
    assert response.status_code == 403


def test_recurring_for_member(client, seeded):
    """Test running recurring expenses with nothing due."""
    response = client.post("/api/expenses/recurring/1", params={"user_id": 1})
    assert response.status_code == 200
    assert response.json() == {"processed": 0, "skipped": 0}


def test_get_rates(client, seeded):
    """Test reading the cached rate table."""
    data = client.get("/api/fx-rates").json()
    assert data["base_currency"] == "USD"
    assert Decimal(data["rates"]["EUR"]) == Decimal("0.9")
    assert data["is_stale"] is False
    assert data["hours_since_update"] == 0


def test_refresh_rates_without_key(client, seeded):
    """Test that a refresh without an API key reports the provider as unavailable."""
    response = client.post("/api/fx-rates/refresh")
    assert response.status_code == 503


def test_list_expenses_by_category(client, seeded):
    """Test narrowing the list to one category."""
    response = client.get("/api/expenses", params={"user_id": 1, "category": "utilities"})
    assert [e["id"] for e in response.json()["expenses"]] == ["2"]


def test_list_expenses_by_search_term(client, seeded):
    """Test searching descriptions."""
    response = client.get("/api/expenses", params={"user_id": 1, "search": "weekly"})
    assert [e["id"] for e in response.json()["expenses"]] == ["1"]


def test_update_budget_failure_keeps_old_value(client, seeded, monkeypatch):
    """Test that a failed save reports 503 and leaves the budget unchanged."""
    monkeypatch.setattr(SqlBudgetStore, "write_budget", lambda self, user_id, value: False)
    response = client.put("/api/budget", params={"user_id": 1}, json={"monthly_budget": "650"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Failed to update budget. Please try again."
    
    response = client.get("/api/budget", params={"user_id": 1})
    assert Decimal(response.json()["monthly_budget"]) == Decimal("500")
