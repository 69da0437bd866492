"""Tests for core.supabase against a mocked Supabase REST API.

Requests are served by httpx.MockTransport; nothing leaves the process.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from core.gallery import ItemSourceError
from core.supabase import IMAGE_COLUMNS, INVALID_RESPONSE, SupabaseService, image_source

URL = "https://project.supabase.test"
ANON = "anon-key"


def _service(handler):
    return SupabaseService(URL, ANON, transport=httpx.MockTransport(handler))


def _recorder(response):
    """Handler that records every request and answers with ``response``."""
    seen = []

    def handler(request):
        seen.append(request)
        return response

    return handler, seen


def _run(coro):
    return asyncio.run(coro)


class TestConfiguration:

    def test_unconfigured_auth_calls(self):
        service = SupabaseService("", "")
        assert _run(service.send_magic_link("a@b.test", "http://x")) == (False, "Authentication not configured")
        assert _run(service.exchange_code_for_session("c", "v")) == (None, "Authentication not configured")
        assert _run(service.refresh_session("r")) == (None, "Authentication not configured")
        assert _run(service.get_user("t")) == (None, "Authentication not configured")
        assert _run(service.sign_out("t")) == (False, "Authentication not configured")

    def test_unconfigured_database_calls(self):
        service = SupabaseService("", "")
        assert _run(service.list_images("t")) == (None, "Database not configured")
        assert _run(service.get_share_link("abc")) == (None, "Database not configured")

    def test_trailing_slash_stripped(self):
        assert SupabaseService(URL + "/", ANON).url == URL


class TestSendMagicLink:

    def test_success(self):
        handler, seen = _recorder(httpx.Response(200, json={}))
        ok, error = _run(_service(handler).send_magic_link(
            "mom@example.com", "http://localhost:5001/auth/callback", code_challenge="abc",
        ))
        assert ok is True
        assert error is None

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/auth/v1/otp"
        assert request.url.params["redirect_to"] == "http://localhost:5001/auth/callback"
        assert request.headers["apikey"] == ANON
        body = json.loads(request.content)
        assert body == {
            "email": "mom@example.com",
            "create_user": False,
            "code_challenge": "abc",
            "code_challenge_method": "s256",
        }

    def test_without_challenge(self):
        handler, seen = _recorder(httpx.Response(200, json={}))
        _run(_service(handler).send_magic_link("a@b.test", "http://x"))
        body = json.loads(seen[0].content)
        assert "code_challenge" not in body

    def test_error_message_from_response(self):
        handler, _ = _recorder(httpx.Response(422, json={"msg": "Signups not allowed for otp"}))
        ok, error = _run(_service(handler).send_magic_link("stranger@b.test", "http://x"))
        assert ok is False
        assert error == "Signups not allowed for otp"

    def test_non_json_error_uses_default(self):
        handler, _ = _recorder(httpx.Response(500, text="Bad gateway"))
        ok, error = _run(_service(handler).send_magic_link("a@b.test", "http://x"))
        assert ok is False
        assert error == "Failed to send magic link"

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        ok, error = _run(_service(handler).send_magic_link("a@b.test", "http://x"))
        assert ok is False
        assert error.startswith("Connection error:")


class TestExchangeCode:

    def test_success(self):
        handler, seen = _recorder(httpx.Response(200, json={
            "access_token": "jwt",
            "refresh_token": "refresh",
            "user": {"id": "u1", "email": "mom@example.com", "aud": "authenticated"},
        }))
        session, error = _run(_service(handler).exchange_code_for_session("the-code", "the-verifier"))
        assert error is None
        assert session == {
            "access_token": "jwt",
            "refresh_token": "refresh",
            "expires_at": 0,
            "user": {"id": "u1", "email": "mom@example.com"},
        }
        request = seen[0]
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "pkce"
        assert json.loads(request.content) == {"auth_code": "the-code", "code_verifier": "the-verifier"}

    def test_invalid_code(self):
        handler, _ = _recorder(httpx.Response(400, json={
            "error": "invalid_grant", "error_description": "Invalid auth code",
        }))
        session, error = _run(_service(handler).exchange_code_for_session("bad", "v"))
        assert session is None
        assert error == "Invalid auth code"

    def test_expires_at_passed_through(self):
        handler, _ = _recorder(httpx.Response(200, json={
            "access_token": "jwt", "refresh_token": "r", "expires_at": 1900000000, "expires_in": 3600,
            "user": {"id": "u1"},
        }))
        session, _ = _run(_service(handler).exchange_code_for_session("c", "v"))
        assert session["expires_at"] == 1900000000

    def test_expires_in_becomes_expires_at(self):
        handler, _ = _recorder(httpx.Response(200, json={
            "access_token": "jwt", "refresh_token": "r", "expires_in": 3600, "user": {"id": "u1"},
        }))
        with patch("core.supabase.time.time", return_value=1000.0):
            session, _ = _run(_service(handler).exchange_code_for_session("c", "v"))
        assert session["expires_at"] == 4600

    def test_missing_access_token_is_invalid(self):
        handler, _ = _recorder(httpx.Response(200, json={"user": {"id": "u1"}}))
        assert _run(_service(handler).exchange_code_for_session("c", "v")) == (None, INVALID_RESPONSE)


class TestRefreshSession:

    def test_success(self):
        handler, seen = _recorder(httpx.Response(200, json={
            "access_token": "jwt-2",
            "refresh_token": "refresh-2",
            "expires_at": 1900000000,
            "user": {"id": "u1", "email": "mom@example.com"},
        }))
        session, error = _run(_service(handler).refresh_session("refresh-1"))
        assert error is None
        assert session == {
            "access_token": "jwt-2",
            "refresh_token": "refresh-2",
            "expires_at": 1900000000,
            "user": {"id": "u1", "email": "mom@example.com"},
        }
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "refresh_token"
        assert json.loads(request.content) == {"refresh_token": "refresh-1"}
        assert request.headers["apikey"] == ANON

    def test_rejected_token(self):
        handler, _ = _recorder(httpx.Response(400, json={
            "error": "invalid_grant", "error_description": "Invalid Refresh Token: Already Used",
        }))
        session, error = _run(_service(handler).refresh_session("used"))
        assert session is None
        assert error == "Invalid Refresh Token: Already Used"

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        session, error = _run(_service(handler).refresh_session("r"))
        assert session is None
        assert error.startswith("Connection error:")


class TestUserAndSignOut:

    def test_get_user_sends_bearer_token(self):
        handler, seen = _recorder(httpx.Response(200, json={"id": "u1", "email": "a@b.test"}))
        user, error = _run(_service(handler).get_user("jwt"))
        assert user == {"id": "u1", "email": "a@b.test"}
        assert seen[0].headers["Authorization"] == "Bearer jwt"

    def test_get_user_invalid_token(self):
        handler, _ = _recorder(httpx.Response(401, json={"message": "invalid JWT"}))
        user, error = _run(_service(handler).get_user("expired"))
        assert user is None
        assert error == "invalid JWT"

    def test_get_user_non_json_body(self):
        handler, _ = _recorder(httpx.Response(200, text="<html>Bad gateway</html>"))
        assert _run(_service(handler).get_user("jwt")) == (None, INVALID_RESPONSE)

    @pytest.mark.parametrize("status", [200, 204])
    def test_sign_out_success(self, status):
        handler, seen = _recorder(httpx.Response(status))
        ok, error = _run(_service(handler).sign_out("jwt"))
        assert ok is True
        assert seen[0].url.path == "/auth/v1/logout"

    def test_sign_out_failure(self):
        handler, _ = _recorder(httpx.Response(401, json={"msg": "nope"}))
        ok, error = _run(_service(handler).sign_out("jwt"))
        assert ok is False
        assert error == "nope"


class TestRows:

    def test_list_images_query(self):
        handler, seen = _recorder(httpx.Response(200, json=[]))
        rows, error = _run(_service(handler).list_images("jwt"))
        assert rows == []
        request = seen[0]
        assert request.url.path == "/rest/v1/images"
        assert request.url.params["select"] == IMAGE_COLUMNS
        assert request.url.params["order"] == "created_at.desc"
        assert request.headers["Authorization"] == "Bearer jwt"

    def test_list_images_without_token_uses_anon_role(self):
        handler, seen = _recorder(httpx.Response(200, json=[]))
        _run(_service(handler).list_images(None))
        assert seen[0].headers["Authorization"] == f"Bearer {ANON}"

    def test_list_images_error(self):
        handler, _ = _recorder(httpx.Response(401, json={"message": "JWT expired"}))
        rows, error = _run(_service(handler).list_images("jwt"))
        assert rows is None
        assert error == "JWT expired"

    def test_list_images_non_json_body(self):
        handler, _ = _recorder(httpx.Response(200, text="<html>Down for maintenance</html>"))
        assert _run(_service(handler).list_images("jwt")) == (None, INVALID_RESPONSE)

    def test_list_images_object_instead_of_rows(self):
        handler, _ = _recorder(httpx.Response(200, json={"message": "unexpected"}))
        assert _run(_service(handler).list_images("jwt")) == (None, INVALID_RESPONSE)

    def test_get_profile(self):
        handler, seen = _recorder(httpx.Response(200, json=[{"id": "u1", "role": "admin"}]))
        profile, error = _run(_service(handler).get_profile("jwt", "u1"))
        assert profile["role"] == "admin"
        assert seen[0].url.params["id"] == "eq.u1"

    def test_get_profile_missing(self):
        handler, _ = _recorder(httpx.Response(200, json=[]))
        profile, error = _run(_service(handler).get_profile("jwt", "u1"))
        assert profile is None
        assert error == "Profile not found"

    def test_get_share_link_uses_anon_key(self):
        row = {
            "id": "s1", "image_id": "i1", "token": "tok",
            "images": {"id": "i1", "filename": "a.jpg", "storage_path": "a.jpg"},
        }
        handler, seen = _recorder(httpx.Response(200, json=[row]))
        link, error = _run(_service(handler).get_share_link("tok"))
        assert link == row
        assert seen[0].url.params["token"] == "eq.tok"
        assert "images(" in seen[0].url.params["select"]
        assert seen[0].headers["Authorization"] == f"Bearer {ANON}"

    def test_get_share_link_unknown_token(self):
        handler, _ = _recorder(httpx.Response(200, json=[]))
        link, error = _run(_service(handler).get_share_link("nope"))
        assert link is None
        assert error == "Share link not found"

    def test_timeout_becomes_connection_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        rows, error = _run(_service(handler).list_images("jwt"))
        assert rows is None
        assert error.startswith("Connection error:")


class TestImageSource:

    def test_rows_become_items(self):
        handler, _ = _recorder(httpx.Response(200, json=[
            {"id": 1, "filename": "a.jpg", "storage_path": "x/a.jpg", "title": "A", "keywords": ["beach"]},
            {"id": 2, "filename": "b.jpg", "storage_path": "x/b.jpg", "title": None, "keywords": None},
        ]))
        items = _run(image_source(_service(handler), "jwt")())
        assert [item.id for item in items] == ["1", "2"]
        assert items[0].keywords == ("beach",)
        assert items[1].display_title == "b.jpg"

    def test_error_raises_item_source_error(self):
        handler, _ = _recorder(httpx.Response(500, json={"message": "boom"}))
        with pytest.raises(ItemSourceError, match="boom"):
            _run(image_source(_service(handler), "jwt")())
