"""
API tests for routing, guards and error mapping.

Services are replaced through FastAPI dependency overrides, so no
database or object store is needed. The client is used without a
context manager so the application lifespan does not run.

Tests cover:
- Health, readiness and metrics endpoints
- Bearer token enforcement and suspended accounts
- Domain errors rendered as {detail, error_code}
- Permission guards on admin routes
- CSV export and the ROI calculator
- Bounded image uploads
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from silent_money.config import Settings
from silent_money.dependencies import (
    get_admin_service,
    get_auth_service,
    get_current_user,
    get_idea_service,
    get_storage_service,
)
from silent_money.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from silent_money.main import app
from silent_money.models.auth import Role
from silent_money.models.catalog import IdeaListResponse, IdeaResponse, IdeaSort
from silent_money.services.storage_service import StorageService
from tests.factories import make_idea, make_user

API = "/api/v1"


@pytest.fixture
def client():
    app.dependency_overrides[get_auth_service] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


def signed_in_as(user):
    app.dependency_overrides[get_current_user] = lambda: user
    return {"Authorization": "Bearer test-token"}


def use_service(dependency, service):
    app.dependency_overrides[dependency] = lambda: service
    return service


# ============================================================================
# HEALTH AND MONITORING
# ============================================================================


class TestHealthEndpoints:
    """Test unauthenticated operational endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Correlation-ID"]

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_ready_without_database(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"] == "unhealthy"

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")


# ============================================================================
# AUTHENTICATION
# ============================================================================


class TestAuthentication:
    """Test bearer token handling."""

    def test_missing_token(self, client):
        response = client.get(f"{API}/ideas/mine")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"] == "Missing authentication credentials"

    def test_suspended_account(self, client):
        headers = signed_in_as(make_user(is_banned=True))

        response = client.get(f"{API}/ideas/mine", headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Account suspended"

    def test_banned_sign_in_carries_error_code(self, client):
        auth = MagicMock()
        auth.sign_in = AsyncMock(side_effect=PermissionDeniedError("Account suspended", error_code="SM_403_BANNED"))
        use_service(get_auth_service, auth)

        response = client.post(f"{API}/auth/signin", json={"email": "asha@example.com", "password": "Passive2024"})

        assert response.status_code == 403
        assert response.json() == {"detail": "Account suspended", "error_code": "SM_403_BANNED"}

    def test_weak_password_rejected_before_service(self, client):
        auth = use_service(get_auth_service, MagicMock())
        auth.sign_up = AsyncMock()

        response = client.post(
            f"{API}/auth/signup",
            json={"email": "asha@example.com", "password": "password", "full_name": "Asha"},
        )

        assert response.status_code == 422
        auth.sign_up.assert_not_awaited()


# ============================================================================
# CATALOG
# ============================================================================


class TestIdeaRoutes:
    """Test public idea routes."""

    def test_list_passes_filters(self, client):
        service = use_service(get_idea_service, MagicMock())
        row = make_idea()
        service.list_ideas = AsyncMock(return_value=IdeaListResponse(
            items=[IdeaResponse(**row)], total=1, limit=10, offset=0
        ))

        response = client.get(f"{API}/ideas", params={"category": "real-estate", "sort": "upvotes_count", "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["slug"] == row["slug"]
        filters, limit, offset = service.list_ideas.await_args.args
        assert filters.category == "real-estate"
        assert filters.sort is IdeaSort.MOST_UPVOTED
        assert (limit, offset) == (10, 0)

    def test_page_size_is_capped(self, client):
        use_service(get_idea_service, MagicMock())

        response = client.get(f"{API}/ideas", params={"limit": 500})

        assert response.status_code == 422

    def test_not_found_maps_to_error_body(self, client):
        service = use_service(get_idea_service, MagicMock())
        service.get_by_slug = AsyncMock(side_effect=NotFoundError("Idea not found"))

        response = client.get(f"{API}/ideas/no-such-idea")

        assert response.status_code == 404
        assert response.json() == {"detail": "Idea not found", "error_code": "SM_404"}


class TestInsightRoutes:
    """Test the ROI calculator endpoint."""

    def test_roi(self, client):
        response = client.post(
            f"{API}/insights/roi",
            json={"investment": 100000, "monthly_income": 10000, "monthly_expenses": 2000, "years": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert Decimal(str(body["net_profit"])) == Decimal("92000")
        assert body["break_even_months"] == 13
        assert len(body["yearly"]) == 2

    def test_roi_rejects_long_horizon(self, client):
        response = client.post(f"{API}/insights/roi", json={"years": 25})

        assert response.status_code == 422


# ============================================================================
# ADMIN
# ============================================================================


class TestAdminRoutes:
    """Test permission guards and admin responses."""

    def test_member_cannot_open_dashboard(self, client):
        service = use_service(get_admin_service, MagicMock())
        service.dashboard = AsyncMock()
        headers = signed_in_as(make_user(Role.USER))

        response = client.get(f"{API}/admin/dashboard", headers=headers)

        assert response.status_code == 403
        service.dashboard.assert_not_awaited()

    def test_moderator_cannot_manage_users(self, client):
        use_service(get_admin_service, MagicMock())
        headers = signed_in_as(make_user(Role.MODERATOR))

        response = client.get(f"{API}/admin/users/export", headers=headers)

        assert response.status_code == 403

    def test_export_users_csv(self, client):
        service = use_service(get_admin_service, MagicMock())
        service.export_users_csv = AsyncMock(return_value="id,full_name\n1,Asha\n")
        headers = signed_in_as(make_user(Role.ADMIN))

        response = client.get(f"{API}/admin/users/export", headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "users.csv" in response.headers["content-disposition"]
        assert response.text.startswith("id,full_name")

    def test_ban_owner_maps_to_forbidden(self, client):
        service = use_service(get_admin_service, MagicMock())
        service.set_banned = AsyncMock(side_effect=PermissionDeniedError("The platform owner cannot be modified"))
        headers = signed_in_as(make_user(Role.ADMIN))

        response = client.post(
            f"{API}/admin/users/00000000-0000-0000-0000-000000000001/ban",
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "SM_403"

    def test_bulk_rejects_unknown_action(self, client):
        use_service(get_admin_service, MagicMock())
        headers = signed_in_as(make_user(Role.ADMIN))

        response = client.post(
            f"{API}/admin/assets/bulk",
            headers=headers,
            json={"action": "delete", "items": []},
        )

        assert response.status_code == 422


# ============================================================================
# UPLOADS
# ============================================================================


class TestUploadRoutes:
    """Test the bounded image upload read."""

    def test_oversized_upload_rejected_without_storing(self, client):
        store = MagicMock()
        store.put_object = AsyncMock()
        settings = Settings(storage_max_upload_bytes=1024)
        use_service(get_storage_service, StorageService(store, MagicMock(), settings=settings))
        headers = signed_in_as(make_user())

        response = client.post(
            f"{API}/uploads/images",
            headers=headers,
            files={"file": ("roof.png", b"x" * 5000, "image/png")},
        )

        assert response.status_code == 422
        assert response.json()["detail"].startswith("File is too large")
        store.put_object.assert_not_awaited()

    def test_upload_read_stops_past_the_limit(self, client):
        service = use_service(get_storage_service, MagicMock())
        service.settings = Settings(storage_max_upload_bytes=1024)
        service.upload_image = AsyncMock(side_effect=InvalidStateError("File is too large"))
        headers = signed_in_as(make_user())

        client.post(
            f"{API}/uploads/images",
            headers=headers,
            files={"file": ("roof.png", b"x" * 5000, "image/png")},
        )

        folder, filename, data, content_type = service.upload_image.await_args.args
        assert (folder, filename) == ("ideas", "roof.png")
        assert len(data) == 1025

    def test_upload_within_limit(self, client):
        store = MagicMock()
        store.put_object = AsyncMock()
        store.public_url = MagicMock(return_value="https://cdn.example/ideas/x.png")
        settings = Settings(storage_max_upload_bytes=1024)
        use_service(get_storage_service, StorageService(store, MagicMock(), settings=settings))
        headers = signed_in_as(make_user())

        response = client.post(
            f"{API}/uploads/images",
            headers=headers,
            files={"file": ("roof.png", b"x" * 512, "image/png")},
        )

        assert response.status_code == 201
        assert response.json()["path"].startswith("ideas/")
        assert len(store.put_object.await_args.args[2]) == 512
