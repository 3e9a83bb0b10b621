from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from ..core.config import Settings
from ..main import create_app

@pytest.fixture
def client(tmp_path) -> TestClient:
    test_db = tmp_path / "test.db"
    settings = Settings(
        database_url=f"sqlite:///{test_db}",
        store_backend="sql",
        _env_file=None,
    )
    app = create_app(settings)

    with TestClient(app) as test_client:
        yield test_client


def _signup(client: TestClient, **overrides):
    body = {
        "name": "Alice",
        "email": "alice@example.com",
        "cardNumber": "1234 5678",
        "pin": "1234",
    }
    body.update(overrides)
    return client.post("/api/signup", json=body)


def test_health(client: TestClient) -> None:
    response = client.get("/api/test")
    assert response.status_code == 200
    assert response.json()["message"] == "Backend is running!"


def test_signup_login_deposit_withdraw(client: TestClient) -> None:
    response = _signup(client)
    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    user = payload["user"]
    assert user["cardNumber"] == "12345678"
    assert user["balance"] == 1000.0
    assert "pin" not in user
    user_id = user["id"]

    login = client.post("/api/login", json={"cardNumber": "12345678", "pin": "1234"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == user_id
    assert login.json()["user"]["transactions"] == []

    deposit = client.post("/api/deposit", json={"userId": user_id, "amount": 250.5})
    assert deposit.status_code == 200
    assert deposit.json()["balance"] == 1250.5
    assert deposit.json()["transaction"]["type"] == "deposit"
    assert deposit.json()["transaction"]["balanceAfter"] == 1250.5

    withdraw = client.post("/api/withdraw", json={"userId": user_id, "amount": 50})
    assert withdraw.status_code == 200
    assert withdraw.json()["balance"] == 1200.5

    history = client.get(f"/api/transactions/{user_id}")
    assert history.status_code == 200
    entries = history.json()["transactions"]
    # Newest first
    assert [entry["type"] for entry in entries] == ["withdraw", "deposit"]
    assert [entry["balanceAfter"] for entry in entries] == [1200.5, 1250.5]

    detail = client.get(f"/api/user/{user_id}")
    assert detail.json()["user"]["balance"] == 1200.5
    assert len(detail.json()["user"]["transactions"]) == 2


def test_signup_with_explicit_balance(client: TestClient) -> None:
    response = _signup(client, balance=100)
    assert response.json()["user"]["balance"] == 100.0


def test_signup_duplicate_card_number_conflicts(client: TestClient) -> None:
    assert _signup(client).status_code == 201

    response = _signup(client, email="other@example.com", cardNumber="12345678")
    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "Email or card number already registered",
    }


def test_signup_duplicate_email_is_case_insensitive(client: TestClient) -> None:
    assert _signup(client).status_code == 201

    response = _signup(client, email="ALICE@example.com", cardNumber="99998888")
    assert response.status_code == 409


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "All fields are required"),
        ({"cardNumber": "123"}, "Card number must be 4-16 digits"),
        ({"cardNumber": "12ab5678"}, "Card number must be 4-16 digits"),
        ({"pin": "12"}, "PIN must be 4-6 digits"),
    ],
)
def test_signup_validation_errors(client: TestClient, overrides, message) -> None:
    response = _signup(client, **overrides)
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_login_errors_do_not_reveal_which_part_failed(client: TestClient) -> None:
    _signup(client)

    wrong_pin = client.post("/api/login", json={"cardNumber": "12345678", "pin": "9999"})
    unknown_card = client.post("/api/login", json={"cardNumber": "87654321", "pin": "1234"})

    assert wrong_pin.status_code == 401
    assert unknown_card.status_code == 401
    assert wrong_pin.json() == unknown_card.json()


def test_login_missing_fields(client: TestClient) -> None:
    response = client.post("/api/login", json={"cardNumber": "12345678"})
    assert response.status_code == 400
    assert response.json()["message"] == "Card number and PIN are required"


def test_withdraw_insufficient_funds(client: TestClient) -> None:
    user_id = _signup(client, balance=10).json()["user"]["id"]

    response = client.post("/api/withdraw", json={"userId": user_id, "amount": 11})
    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient funds"

    history = client.get(f"/api/transactions/{user_id}").json()["transactions"]
    assert history == []


@pytest.mark.parametrize("amount", [0, -5, "abc", None])
def test_deposit_rejects_invalid_amounts(client: TestClient, amount) -> None:
    user_id = _signup(client).json()["user"]["id"]

    response = client.post("/api/deposit", json={"userId": user_id, "amount": amount})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid deposit amount"


def test_unknown_user_returns_404(client: TestClient) -> None:
    assert client.get("/api/user/does-not-exist").status_code == 404
    assert client.get("/api/transactions/does-not-exist").status_code == 404

    response = client.post("/api/deposit", json={"userId": "does-not-exist", "amount": 5})
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_malformed_body_returns_400(client: TestClient) -> None:
    response = client.post("/api/signup", json={"name": ["not", "a", "string"]})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_concurrent_requests_do_not_lose_updates(client: TestClient) -> None:
    user_id = _signup(client, balance=100).json()["user"]["id"]

    def move(path: str, amount: int) -> int:
        return client.post(path, json={"userId": user_id, "amount": amount}).status_code

    jobs = [("/api/deposit", 10), ("/api/withdraw", 5)] * 5
    with ThreadPoolExecutor(max_workers=4) as pool:
        codes = list(pool.map(lambda job: move(*job), jobs))

    assert codes == [200] * len(jobs)
    detail = client.get(f"/api/user/{user_id}").json()["user"]
    assert detail["balance"] == 125.0
    assert len(detail["transactions"]) == len(jobs)


def test_oversized_deposit_is_a_json_400(client: TestClient) -> None:
    user_id = _signup(client).json()["user"]["id"]

    response = client.post(
        "/api/deposit", json={"userId": user_id, "amount": 100000000000000000}
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid deposit amount"}

    response = client.post("/api/deposit", json={"userId": user_id, "amount": "1e30"})
    assert response.status_code == 400

    assert client.get(f"/api/user/{user_id}").json()["user"]["balance"] == 1000.0


def test_blank_signup_balance_uses_default(client: TestClient) -> None:
    response = _signup(client, balance="")
    assert response.status_code == 201
    assert response.json()["user"]["balance"] == 1000.0


def test_movement_messages_echo_the_accepted_amount(client: TestClient) -> None:
    user_id = _signup(client).json()["user"]["id"]

    deposit = client.post("/api/deposit", json={"userId": user_id, "amount": 10})
    assert deposit.json()["message"] == "Successfully deposited $10.00"

    withdraw = client.post("/api/withdraw", json={"userId": user_id, "amount": "2.5"})
    assert withdraw.json()["message"] == "Successfully withdrew $2.50"
