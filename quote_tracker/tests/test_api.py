"""
Tests for the HTTP API.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from quote_tracker.api.dependencies import get_dispatcher
from quote_tracker.database.base import utcnow
from quote_tracker.main import create_app
from quote_tracker.models.quote import QuoteStatus
from quote_tracker.tests.fakes import FixedClock

SUBMISSION = {
    "client": {
        "name": "Ana García",
        "email": "ana@example.com",
        "phone": "+54 11 5555-1234",
        "company": "",
    },
    "project": {
        "service_type": "LANDING_PAGE",
        "features": ["seo-optimization"],
        "description": "Landing para lanzamiento",
        "timeline": "1 mes",
    },
}

CRON_AUTH = {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def clock():
    return FixedClock(utcnow())


@pytest.fixture
def app(settings, store, transport):
    return create_app(settings, store=store, transport=transport)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


class TestPricingRoutes:
    
    def test_calculate(self, client):
        response = client.post("/api/pricing/calculate", json={
            "service_type": "LANDING_PAGE",
            "features": ["seo-optimization", "unknown-x"],
        })
        
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 210000
        assert data["additional_cost"] == 40000
        assert len(data["feature_breakdown"]) == 1
        assert data["priority"] == "MEDIUM"
    
    def test_catalog(self, client):
        response = client.post("/api/pricing/catalog", json={
            "service_type": "SOCIAL_MEDIA",
            "urgency": "urgent",
            "discount": "non-profit",
        })
        
        assert response.status_code == 200
        assert response.json()["total_price"] == 85000
    
    def test_features(self, client):
        response = client.get("/api/pricing/features/landing_page")
        
        assert response.status_code == 200
        keys = [feature["key"] for feature in response.json()["features"]]
        assert "seo-optimization" in keys
    
    def test_unknown_service(self, client):
        assert client.get("/api/pricing/features/hologram").status_code == 404
    
    def test_invalid_service_is_400(self, client):
        response = client.post("/api/pricing/calculate", json={"service_type": "HOLOGRAM"})
        
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestSubmitRoute:
    """Tests for POST /quotes."""
    
    def test_created(self, client, transport, store):
        response = client.post("/api/quotes", json=SUBMISSION)
        
        assert response.status_code == 201
        data = response.json()
        assert data["estimated_price"] == 210000
        assert data["status"] == "PENDING"
        assert data["tracking_url"] == (
            f"https://hexagono.xyz/cotizacion/seguimiento/{data['access_token']}"
        )
        assert store.quotes[data["id"]].client_company is None
        # client confirmation and admin notice
        assert transport.calls == 2
    
    def test_high_priority_escalates(self, client, transport):
        payload = {
            **SUBMISSION,
            "project": {"service_type": "ECOMMERCE", "features": ["payment-gateway"]},
        }
        
        response = client.post("/api/quotes", json=payload)
        
        assert response.json()["priority"] == "HIGH"
        assert transport.calls == 3
        assert any(message.subject.startswith("🔥 URGENTE") for message in transport.sent)
    
    def test_exhausted_numbers_is_503(self, client, store, transport):
        store.seed(quote_number=f"COT-{utcnow():%Y%m%d}-9999")
        
        response = client.post("/api/quotes", json=SUBMISSION)
        
        assert response.status_code == 503
        assert response.json()["code"] == "QUOTE_NUMBERS_EXHAUSTED"
        assert transport.calls == 0
    
    def test_notification_error_does_not_fail_submission(self, app):
        failing = MagicMock()
        failing.renderer.is_high_priority.return_value = False
        failing.renderer.tracking_url.return_value = "https://hexagono.xyz/t"
        failing.notify_created = AsyncMock(side_effect=RuntimeError("smtp down"))
        app.dependency_overrides[get_dispatcher] = lambda: failing
        
        with TestClient(app) as client:
            response = client.post("/api/quotes", json=SUBMISSION)
        
        assert response.status_code == 201
        failing.notify_created.assert_awaited_once_with(response.json()["id"])
    
    @pytest.mark.parametrize("client_patch,field", [
        ({"email": "not-an-email"}, "client.email"),
        ({"name": "A"}, "client.name"),
        ({"phone": "abc"}, "client.phone"),
    ])
    def test_validation(self, client, transport, client_patch, field):
        payload = {**SUBMISSION, "client": {**SUBMISSION["client"], **client_patch}}
        
        response = client.post("/api/quotes", json=payload)
        
        assert response.status_code == 400
        assert field in [detail["field"] for detail in response.json()["details"]]
        assert transport.calls == 0
    
    def test_too_many_features(self, client):
        payload = {
            **SUBMISSION,
            "project": {"service_type": "ECOMMERCE", "features": ["x"] * 21},
        }
        assert client.post("/api/quotes", json=payload).status_code == 400


class TestAdminRoutes:
    
    def test_list(self, client, store):
        store.seed()
        store.seed(status=QuoteStatus.QUOTED)
        
        response = client.get("/api/quotes", params={"status": "QUOTED"})
        
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["status"] == "QUOTED"
    
    def test_get(self, client, store):
        quote = store.seed()
        
        response = client.get(f"/api/quotes/{quote.id}")
        
        assert response.status_code == 200
        assert response.json()["status_history"][0]["changed_by"] == "system"
    
    def test_get_missing(self, client):
        response = client.get("/api/quotes/missing")
        
        assert response.status_code == 404
        assert response.json()["code"] == "QUOTE_NOT_FOUND"
    
    def test_patch_fields(self, client, store):
        quote = store.seed()
        
        response = client.patch(f"/api/quotes/{quote.id}", json={"assigned_to": "lucia"})
        
        assert response.status_code == 200
        assert response.json()["assigned_to"] == "lucia"
    
    def test_stats(self, client, store):
        store.seed()
        assert client.get("/api/quotes/stats").json()["PENDING"] == 1


class TestStatusRoutes:
    """Tests for PATCH /quotes/{id}/status."""
    
    def test_change_notifies_client(self, client, store, transport):
        quote = store.seed()
        
        response = client.patch(f"/api/quotes/{quote.id}/status", json={
            "status": "IN_REVIEW",
            "notes": "Revisando",
            "message": "Ya estamos trabajando",
        })
        
        assert response.status_code == 200
        data = response.json()
        assert data["previous_status"] == "PENDING"
        assert data["status"] == "IN_REVIEW"
        assert data["notification_scheduled"] is True
        assert transport.calls == 1
        assert "En revisión" in transport.sent[0].subject
    
    def test_same_status_no_notification(self, client, store, transport):
        quote = store.seed(status=QuoteStatus.IN_REVIEW)
        
        response = client.patch(f"/api/quotes/{quote.id}/status", json={"status": "IN_REVIEW"})
        
        assert response.status_code == 200
        assert response.json()["notification_scheduled"] is False
        assert transport.calls == 0
    
    def test_notify_client_off(self, client, store, transport):
        quote = store.seed()
        
        client.patch(f"/api/quotes/{quote.id}/status", json={
            "status": "QUOTED",
            "notify_client": False,
        })
        
        assert transport.calls == 0
    
    def test_invalid_status(self, client, store):
        quote = store.seed()
        response = client.patch(f"/api/quotes/{quote.id}/status", json={"status": "ARCHIVED"})
        assert response.status_code == 400
    
    def test_history(self, client, store):
        quote = store.seed()
        client.patch(f"/api/quotes/{quote.id}/status", json={"status": "QUOTED"})
        
        response = client.get(f"/api/quotes/{quote.id}/status")
        
        assert [entry["new_status"] for entry in response.json()["history"]] == [
            "PENDING", "QUOTED",
        ]


class TestTrackingRoute:
    
    def test_public_view(self, client, store):
        quote = store.seed()
        client.post(f"/api/quotes/{quote.id}/notes", json={"note": "Hola Ana"})
        client.post(f"/api/quotes/{quote.id}/notes", json={"note": "Interna", "is_internal": True})
        
        response = client.get(f"/api/quotes/track/{quote.access_token}")
        
        assert response.status_code == 200
        data = response.json()
        assert data["quote_number"] == quote.quote_number
        assert [note["note"] for note in data["notes"]] == ["Hola Ana"]
        assert "client_email" not in data
    
    def test_malformed_token(self, client):
        response = client.get("/api/quotes/track/short")
        
        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"
    
    def test_unknown_token(self, client):
        assert client.get(f"/api/quotes/track/{'Z' * 32}").status_code == 404


class TestReminderRoutes:
    
    def test_manual_reminder(self, client, store, transport):
        quote = store.seed(age=timedelta(days=3))
        
        response = client.post(f"/api/quotes/{quote.id}/reminder")
        
        assert response.status_code == 200
        assert response.json() == {"quote_id": quote.id, "sent": True}
    
    def test_manual_reminder_too_early(self, client, store, transport):
        quote = store.seed(age=timedelta(hours=1))
        
        response = client.post(f"/api/quotes/{quote.id}/reminder")
        
        assert response.status_code == 400
        assert transport.calls == 0
    
    def test_cron_requires_secret(self, client):
        assert client.post("/api/cron/reminders").status_code == 401
        assert client.post(
            "/api/cron/reminders", headers={"Authorization": "Bearer wrong"},
        ).status_code == 401
    
    def test_cron_sweep(self, client, store):
        store.seed(age=timedelta(days=3))
        store.seed(age=timedelta(days=3))
        store.seed(status=QuoteStatus.COMPLETED, age=timedelta(days=3))
        
        response = client.post("/api/cron/reminders", headers=CRON_AUTH)
        
        assert response.status_code == 200
        assert response.json() == {"processed": 2, "successful": 2, "failed": 0}


class TestSystemRoutes:
    
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"
    
    def test_health_degraded(self, client, store):
        store.ping = AsyncMock(return_value=False)
        assert client.get("/health").status_code == 503
