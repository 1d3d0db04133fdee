import json

import httpx
import pytest
from fastapi.testclient import TestClient

from expenser.core.context import build_services
from expenser.core.rate_limit import rate_limiter
from expenser.domain.storage.services import StorageError
from expenser.services.identity_client import IdentityClient
from expenser.services.llm_client import GeminiClient
from main import app


def _gemini_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        question = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": f"echo: {question}"}]}}]})

    return httpx.MockTransport(handler)


@pytest.fixture
def services():
    return build_services(
        identity_client=IdentityClient("stub"),
        llm_client=GeminiClient("g-key", transport=_gemini_transport()),
    )


@pytest.fixture
def client(services):
    app.state.services = services
    rate_limiter.reset()
    with TestClient(app) as test_client:
        test_client.portal.call(services.storage.clear)
        yield test_client
    del app.state.services


def _login(client, email="ana@example.com"):
    response = client.post("/auth/login", json={"email": email, "password": "secret"})
    assert response.status_code == 200
    return response.json()


class TestAuth:
    def test_requires_session(self, client):
        assert client.get("/api/transactions").status_code == 401
        assert client.get("/auth/me").json()["detail"] == "Not authenticated"

    def test_tampered_cookie(self, client):
        client.cookies.set("expenser_session", "forged")
        assert client.get("/auth/me").json()["detail"] == "Invalid session"

    def test_login_sets_session(self, client):
        identity = _login(client)
        assert client.get("/auth/me").json()["uid"] == identity["uid"]

    def test_register_with_display_name(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "bruno@example.com", "password": "secret", "displayName": "Bruno"},
        )
        assert response.status_code == 201
        assert response.json()["displayName"] == "Bruno"

    def test_provider_error_is_401(self, client, services, monkeypatch):
        from expenser.services.identity_client import IdentityProviderError

        async def reject(email, password):
            raise IdentityProviderError("INVALID_PASSWORD", status_code=400)

        monkeypatch.setattr(services.identity_client, "sign_in_with_password", reject)
        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "bad"})
        assert response.status_code == 401
        assert response.json()["detail"] == "INVALID_PASSWORD"

    def test_login_rate_limit(self, client):
        for _ in range(5):
            client.post("/auth/login", json={"email": "ana@example.com", "password": "secret"})
        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "secret"})
        assert response.status_code == 429

    def test_logout_clears_session(self, client):
        _login(client)
        assert client.post("/auth/logout").status_code == 204
        assert client.get("/auth/me").status_code == 401


class TestTransactions:
    def test_demo_data_after_first_login(self, client):
        _login(client)
        transactions = client.get("/api/transactions").json()
        assert {t["id"] for t in transactions} == {"1", "2", "3"}
        lunch = next(t for t in transactions if t["id"] == "1")
        assert lunch["amount"] == 25.5
        assert lunch["categoryIcon"] == "🍽️"
        assert "createdAt" in lunch

    def test_create_update_delete(self, client):
        _login(client)
        created = client.post(
            "/api/transactions",
            json={"amount": "19.90", "description": "Cinema", "category": "Entertainment", "tags": "movies"},
        )
        assert created.status_code == 201
        transaction_id = created.json()["id"]

        updated = client.patch(f"/api/transactions/{transaction_id}", json={"amount": 21})
        assert updated.json()["amount"] == 21
        assert updated.json()["description"] == "Cinema"

        assert client.delete(f"/api/transactions/{transaction_id}").status_code == 204
        assert transaction_id not in {t["id"] for t in client.get("/api/transactions").json()}

    def test_invalid_payload_stores_nothing(self, client):
        _login(client)
        response = client.post("/api/transactions", json={"amount": "-3", "description": "x", "category": "Other"})
        assert response.status_code == 422
        assert len(client.get("/api/transactions").json()) == 3

    def test_unknown_ids_are_ignored(self, client):
        _login(client)
        assert client.patch("/api/transactions/nope", json={"amount": 1}).json() is None
        assert client.delete("/api/transactions/nope").status_code == 204
        assert len(client.get("/api/transactions").json()) == 3

    def test_filters(self, client):
        _login(client)
        assert [t["id"] for t in client.get("/api/transactions", params={"type": "income"}).json()] == ["2"]
        assert [t["id"] for t in client.get("/api/transactions", params={"search": "electricity"}).json()] == ["3"]

    def test_storage_failure_is_503(self, client, services, monkeypatch):
        _login(client)

        async def broken_set(key, value):
            raise StorageError("disk full")

        monkeypatch.setattr(services.storage, "set", broken_set)
        response = client.post("/api/transactions", json={"amount": "1", "description": "x", "category": "Other"})
        assert response.status_code == 503
        assert response.json()["detail"] == "Storage is unavailable"


class TestCategories:
    def test_defaults_and_custom(self, client):
        _login(client)
        assert len(client.get("/api/categories").json()) == 10
        created = client.post("/api/categories", json={"name": "Pets", "color": "#112233", "icon": "🐶"})
        assert created.status_code == 201
        assert client.get("/api/categories").json()[-1]["name"] == "Pets"
        assert client.post("/api/categories", json={"name": "pets"}).status_code == 409


class TestViews:
    def test_dashboard(self, client):
        _login(client)
        dashboard = client.get("/api/dashboard").json()
        assert dashboard["totals"]["income"] == 3000
        assert dashboard["totals"]["expenses"] == 145.5
        assert len(dashboard["recentTransactions"]) == 3

    def test_dashboard_follows_changes(self, client):
        _login(client)
        client.get("/api/dashboard")
        client.delete("/api/transactions/2")
        assert client.get("/api/dashboard").json()["totals"]["income"] == 0

    def test_analytics(self, client):
        _login(client)
        analytics = client.get("/api/analytics", params={"timeRange": "all"}).json()
        assert analytics["topCategory"]["name"] == "Bills & Utilities"
        assert client.get("/api/analytics", params={"timeRange": "decade"}).status_code == 422

    def test_report_summary_excluding_income(self, client):
        _login(client)
        summary = client.get(
            "/api/reports/summary",
            params={"from": "2000-01-01", "to": "2100-01-01", "includeIncome": "false"},
        ).json()
        assert summary["totalIncome"] == 0
        assert summary["transactionCount"] == 2

    def test_exports(self, client):
        _login(client)
        params = {"from": "2000-01-01", "to": "2100-01-01"}

        csv_response = client.get("/api/reports/export.csv", params=params)
        assert csv_response.headers["content-type"].startswith("text/csv")
        assert "expenser-data-2000-01-01-to-2100-01-01.csv" in csv_response.headers["content-disposition"]
        assert csv_response.text.splitlines()[0] == "Date,Description,Category,Type,Amount,Tags"

        document = client.get("/api/reports/export.json", params=params).json()
        assert len(document["transactions"]) == 3

        pdf = client.get("/api/reports/export.pdf", params={**params, "reportType": "detailed"})
        assert pdf.content.startswith(b"%PDF")

    def test_inverted_range(self, client):
        _login(client)
        response = client.get("/api/reports/summary", params={"from": "2024-02-01", "to": "2024-01-01"})
        assert response.status_code == 422


class TestChat:
    def test_conversation(self, client):
        _login(client)
        conversation = client.get("/api/chat/messages").json()
        assert len(conversation["messages"]) == 1
        assert len(conversation["quickQuestions"]) == 5

        sent = client.post("/api/chat/messages", json={"message": "Give me budget advice"}).json()
        assert [m["text"] for m in sent["messages"][1:]] == ["Give me budget advice", "echo: Give me budget advice"]
        assert sent["pending"] is False


class TestProfile:
    def test_stats_and_export(self, client):
        _login(client)
        profile = client.get("/api/profile").json()
        assert profile["stats"]["totalTransactions"] == 3

        export = client.get("/api/profile/export")
        assert "expenser-data-export.json" in export.headers["content-disposition"]
        assert len(export.json()["expenses"]) == 3

    def test_delete_data_signs_out(self, client, services):
        _login(client)
        _login(client, "other@example.com")
        assert client.delete("/api/profile/data").status_code == 204
        assert client.get("/auth/me").status_code == 401
        remaining = client.portal.call(services.storage.keys)
        assert len(remaining) == 1


class TestAdmin:
    def test_clear_requires_admin(self, client):
        _login(client)
        assert client.post("/admin/storage/clear").status_code == 403

    def test_admin_clears_everything(self, client, services):
        _login(client)
        _login(client, "admin@example.com")
        assert client.post("/admin/storage/clear").json() == {"removed": 2}
        assert client.portal.call(services.storage.keys) == []

    def test_views_after_clear_match_the_listing(self, client):
        _login(client)
        client.post("/api/transactions", json={"amount": "999", "description": "Wiped later", "category": "Other"})
        client.get("/api/dashboard")

        _login(client, "admin@example.com")
        assert client.post("/admin/storage/clear").status_code == 200

        _login(client)
        client.post("/api/transactions", json={"amount": "10", "description": "New one", "category": "Other"})
        listed = {t["description"] for t in client.get("/api/transactions").json()}
        dashboard = client.get("/api/dashboard").json()
        assert {t["description"] for t in dashboard["recentTransactions"]} == listed
        assert "Wiped later" not in listed
        assert dashboard["totals"]["expenses"] == 155.5


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "storage": "ok"}
