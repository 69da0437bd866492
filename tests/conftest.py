"""Shared test fixtures for auth, permission, and gallery tests."""

import pytest
from unittest.mock import patch

from starlette.testclient import TestClient


# ---------------------------------------------------------------------------
# Auth state fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """Create a fresh test client for the FastHTML app."""
    from app.main import app
    return TestClient(app)


@pytest.fixture
def auth_enabled():
    """Mock auth as enabled (Supabase configured)."""
    with patch("app.main.is_auth_enabled", return_value=True), \
         patch("app.auth.is_auth_enabled", return_value=True):
        yield


@pytest.fixture
def auth_disabled():
    """Mock auth as disabled (no Supabase configured)."""
    with patch("app.main.is_auth_enabled", return_value=False), \
         patch("app.auth.is_auth_enabled", return_value=False):
        yield


@pytest.fixture
def no_user():
    """Mock no user logged in (anonymous)."""
    with patch("app.main.get_current_user", return_value=None):
        yield


@pytest.fixture
def regular_user():
    """Mock a logged-in viewer."""
    from app.auth import User
    user = User(id="test-user-1", email="user@example.com", role="viewer", access_token="user-token")
    with patch("app.main.get_current_user", return_value=user):
        yield user


@pytest.fixture
def admin_user():
    """Mock a logged-in admin."""
    from app.auth import User
    user = User(id="test-admin-1", email="admin@klinemartin.test", role="admin", access_token="admin-token")
    with patch("app.main.get_current_user", return_value=user):
        yield user


# ---------------------------------------------------------------------------
# Gallery data fixtures
# ---------------------------------------------------------------------------

def make_items(count: int, prefix: str = "img"):
    """Build ``count`` ImageItems with ids {prefix}-0 .. {prefix}-{count-1}."""
    from core.models import ImageItem
    return [
        ImageItem(
            id=f"{prefix}-{i}",
            filename=f"{prefix}-{i}.jpg",
            storage_path=f"family/{prefix}-{i}.jpg",
            title=f"Photo {i + 1}",
            keywords=("family",),
            image_url=f"https://cdn.test/{prefix}-{i}.jpg",
        )
        for i in range(count)
    ]


@pytest.fixture
def items_45():
    return make_items(45)


@pytest.fixture
def gallery_items():
    """Patch the app's item source to serve 45 known images (no network, no delay)."""
    items = make_items(45)

    async def source():
        return items

    with patch("app.main.get_item_source", return_value=source):
        yield items
