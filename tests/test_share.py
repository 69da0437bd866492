"""Tests for public share links (/share/{token})."""

from unittest.mock import AsyncMock, patch

import pytest

from core.models import ShareLink


SHARE_ROW = {
    "id": "s1",
    "image_id": "i1",
    "token": "abc123",
    "created_at": "2024-01-01T00:00:00Z",
    "created_by": "u1",
    "images": {"id": "i1", "filename": "tree.jpg", "storage_path": "2023/christmas/tree.jpg",
               "title": "The tree", "keywords": ["christmas"]},
}


@pytest.fixture
def share_lookup():
    lookup = AsyncMock(return_value=(SHARE_ROW, None))
    with patch("app.main.supabase.get_share_link", lookup):
        yield lookup


class TestShareLinkModel:

    def test_from_row_embeds_image(self):
        link = ShareLink.from_row(SHARE_ROW)
        assert link.token == "abc123"
        assert link.image.id == "i1"
        assert link.image.keywords == ("christmas",)

    def test_from_row_without_image(self):
        row = dict(SHARE_ROW, images=None)
        assert ShareLink.from_row(row).image is None


class TestShareRoute:

    def test_placeholder_when_auth_disabled(self, client, auth_disabled):
        response = client.get("/share/abc123")
        assert response.status_code == 200
        assert "Shared image (token: abc123)" in response.text

    def test_public_without_login(self, client, auth_enabled, no_user, share_lookup):
        response = client.get("/share/abc123", follow_redirects=False)
        assert response.status_code == 200
        assert "tree.jpg" in response.text
        share_lookup.assert_awaited_once_with("abc123")

    def test_shows_only_the_image(self, client, auth_enabled, no_user, share_lookup):
        response = client.get("/share/abc123")
        assert 'alt="Shared photo"' in response.text
        # No gallery chrome or metadata on a shared page
        assert "The tree" not in response.text
        assert "Sign Out" not in response.text

    def test_unknown_token_is_404(self, client, auth_enabled, no_user, share_lookup):
        share_lookup.return_value = (None, "Share link not found")
        response = client.get("/share/nope")
        assert response.status_code == 404
        assert "This link is invalid or has expired." in response.text

    def test_link_without_image_is_404(self, client, auth_enabled, no_user, share_lookup):
        share_lookup.return_value = (dict(SHARE_ROW, images=None), None)
        response = client.get("/share/abc123")
        assert response.status_code == 404
