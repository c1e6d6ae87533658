import pytest
from fastapi.testclient import TestClient
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.main import create_app
from app.services.ledger import TransactionLedger


@pytest.fixture
def client():
    """Test client with a fresh ledger"""
    return TestClient(create_app(ledger=TransactionLedger()))


def post(client, **payload):
    return client.post("/transactions", json=payload)


def test_create_transaction(client):
    response = post(client, toAccount="ACC-12345", amount=1000, currency="usd", type="deposit")
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Transaction created successfully"
    data = body["data"]
    assert data["id"]
    assert data["toAccount"] == "ACC-12345"
    assert data["fromAccount"] is None
    assert data["currency"] == "USD"
    assert data["status"] == "completed"
    assert data["timestamp"]


@pytest.mark.parametrize("payload, field", [
    ({"toAccount": "ACC-1", "amount": -10, "currency": "USD", "type": "deposit"}, "amount"),
    ({"toAccount": "ACC-1", "amount": 10.999, "currency": "USD", "type": "deposit"}, "amount"),
    ({"toAccount": "ACC-1", "amount": 10, "currency": "ABC", "type": "deposit"}, "currency"),
    ({"toAccount": "bad id", "amount": 10, "currency": "USD", "type": "deposit"}, "toAccount"),
])
def test_create_transaction_field_errors(client, payload, field):
    """Field-level failures name the offending field"""
    response = client.post("/transactions", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert field in {d["field"] for d in body["details"]}


def test_same_account_transfer_rejected(client):
    response = post(client, fromAccount="ACC-1", toAccount="ACC-1", amount=5, currency="USD", type="transfer")
    assert response.status_code == 400
    messages = " ".join(d["message"] for d in response.json()["details"])
    assert "must be different" in messages


def test_list_and_filter_transactions(client):
    post(client, toAccount="ACC-A", amount=100, currency="USD", type="deposit")
    post(client, fromAccount="ACC-A", toAccount="ACC-B", amount=40, currency="USD", type="transfer")
    post(client, fromAccount="ACC-C", amount=5, currency="USD", type="withdrawal")

    assert len(client.get("/transactions").json()["data"]) == 3
    assert len(client.get("/transactions", params={"accountId": "ACC-A"}).json()["data"]) == 2
    transfers = client.get("/transactions", params={"type": "transfer"}).json()["data"]
    assert [t["toAccount"] for t in transfers] == ["ACC-B"]


def test_list_date_filters(client):
    post(client, toAccount="ACC-A", amount=100, currency="USD", type="deposit")
    today = datetime.now(timezone.utc).date()
    tomorrow = today + timedelta(days=1)

    assert len(client.get("/transactions", params={"from": today.isoformat(), "to": today.isoformat()}).json()["data"]) == 1
    assert client.get("/transactions", params={"from": tomorrow.isoformat()}).json()["data"] == []


def test_list_invalid_date(client):
    response = client.get("/transactions", params={"from": "not-a-date"})
    assert response.status_code == 400


def test_list_invalid_type(client):
    response = client.get("/transactions", params={"type": "gift"})
    assert response.status_code == 400


def test_get_transaction(client):
    created = post(client, toAccount="ACC-A", amount=1, currency="USD", type="deposit").json()["data"]
    response = client.get(f"/transactions/{created['id']}")
    assert response.status_code == 200
    assert response.json()["data"] == created


def test_get_missing_transaction(client):
    response = client.get("/transactions/unknown")
    assert response.status_code == 404
    assert response.json()["error"] == "Transaction not found"


def test_export_empty(client):
    """Nothing to export: empty 200 body"""
    response = client.get("/transactions/export")
    assert response.status_code == 200
    assert response.text == ""


def test_export_csv(client):
    """One transaction exports as header + one row"""
    post(client, toAccount="ACC-A", amount=250.75, currency="EUR", type="deposit")
    response = client.get("/transactions/export", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="transactions.csv"'
    lines = response.text.split("\n")
    assert len(lines) == 2
    assert lines[0] == "id,fromAccount,toAccount,amount,currency,type,timestamp,status"
    assert ",250.75,EUR,deposit," in lines[1]
    assert "$" not in lines[1]


def test_export_respects_filters(client):
    post(client, toAccount="ACC-A", amount=1, currency="USD", type="deposit")
    post(client, toAccount="ACC-B", amount=2, currency="USD", type="deposit")

    lines = client.get("/transactions/export", params={"accountId": "ACC-B"}).text.split("\n")
    assert len(lines) == 2
    assert ",ACC-B,2," in lines[1]


def test_export_unsupported_format(client):
    response = client.get("/transactions/export", params={"format": "xlsx"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid format. Supported formats: csv"


def test_account_balance(client):
    post(client, toAccount="ACC-A", amount=1000, currency="USD", type="deposit")
    post(client, fromAccount="ACC-A", amount=99.99, currency="USD", type="withdrawal")
    post(client, fromAccount="ACC-A", toAccount="ACC-B", amount=0.01, currency="USD", type="transfer")

    data = client.get("/accounts/ACC-A/balance").json()["data"]
    assert data == {"accountId": "ACC-A", "balance": 900.0, "currency": "USD", "transactionCount": 3}
