"""
Supabase service handle: auth (magic link + PKCE), profile and image rows.

Talks to the Supabase REST endpoints over httpx. The handle is constructed
explicitly and passed to whatever needs it; there is no module-level client.
Tests inject an ``httpx.MockTransport``.

Every call returns ``(result, error_message)``. Transport failures become
"Connection error: ..." messages instead of exceptions.
"""

import logging
import time
from typing import Optional

import httpx

from core.config import HTTP_TIMEOUT_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL
from core.gallery import ItemSourceError, ItemSource
from core.models import ImageItem

logger = logging.getLogger(__name__)

# Columns the gallery reads; embeddings are never pulled into the web tier
IMAGE_COLUMNS = "id,filename,storage_path,title,keywords,created_at,updated_at"

INVALID_RESPONSE = "Invalid response from Supabase"


def _json_body(response: httpx.Response):
    """Decoded JSON body, or None when the body is not JSON (e.g. a proxy error page)."""
    try:
        return response.json()
    except ValueError:
        return None


def _session_from_response(response: httpx.Response) -> tuple[Optional[dict], Optional[str]]:
    data = _json_body(response)
    if not isinstance(data, dict) or not data.get("access_token"):
        return None, INVALID_RESPONSE
    user = data.get("user") or {}
    expires_at = data.get("expires_at")
    if not expires_at and data.get("expires_in"):
        expires_at = int(time.time()) + int(data["expires_in"])
    return {
        "access_token": data["access_token"],
        "refresh_token": data.get("refresh_token"),
        "expires_at": int(expires_at or 0),
        "user": {"id": user.get("id"), "email": user.get("email")},
    }, None


def _error_message(response: httpx.Response, default: str) -> str:
    data = _json_body(response)
    if not isinstance(data, dict):
        return default
    return data.get("error_description") or data.get("msg") or data.get("message") or default


class SupabaseService:
    def __init__(self, url: str, anon_key: str, transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: float = HTTP_TIMEOUT_SECONDS):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self._transport = transport
        self._timeout = timeout

    @classmethod
    def from_config(cls) -> "SupabaseService":
        return cls(SUPABASE_URL, SUPABASE_ANON_KEY)

    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    def _headers(self, access_token: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }
        # Row-level security evaluates the user's JWT; fall back to the anon role
        headers["Authorization"] = f"Bearer {access_token or self.anon_key}"
        return headers

    async def _request(self, method: str, path: str, *, access_token: Optional[str] = None,
                       params: Optional[dict] = None, json: Optional[dict] = None) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            return await client.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                headers=self._headers(access_token),
            )

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def send_magic_link(self, email: str, redirect_to: str,
                              code_challenge: Optional[str] = None) -> tuple[bool, Optional[str]]:
        """Email a one-time sign-in link. Existing users only (invite-only gallery)."""
        if not self.is_configured():
            return False, "Authentication not configured"

        body = {"email": email, "create_user": False}
        if code_challenge:
            body["code_challenge"] = code_challenge
            body["code_challenge_method"] = "s256"

        try:
            response = await self._request(
                "POST", "/auth/v1/otp", params={"redirect_to": redirect_to}, json=body,
            )
        except httpx.HTTPError as e:
            return False, f"Connection error: {e}"

        if response.status_code == 200:
            return True, None
        return False, _error_message(response, "Failed to send magic link")

    async def exchange_code_for_session(self, code: str, code_verifier: str) -> tuple[Optional[dict], Optional[str]]:
        """
        Exchange the ?code= from the magic link for a session.

        Returns:
            ({"access_token", "refresh_token", "expires_at", "user": {"id", "email"}}, None)
            on success. expires_at is a unix timestamp, 0 when unknown.
        """
        if not self.is_configured():
            return None, "Authentication not configured"

        try:
            response = await self._request(
                "POST", "/auth/v1/token",
                params={"grant_type": "pkce"},
                json={"auth_code": code, "code_verifier": code_verifier},
            )
        except httpx.HTTPError as e:
            return None, f"Connection error: {e}"

        if response.status_code != 200:
            return None, _error_message(response, "Code exchange failed")
        return _session_from_response(response)

    async def refresh_session(self, refresh_token: str) -> tuple[Optional[dict], Optional[str]]:
        """
        Trade a refresh token for a new access token.

        Returns:
            The same session shape as exchange_code_for_session. The refresh
            token is single-use; the returned one replaces it.
        """
        if not self.is_configured():
            return None, "Authentication not configured"

        try:
            response = await self._request(
                "POST", "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
            )
        except httpx.HTTPError as e:
            return None, f"Connection error: {e}"

        if response.status_code != 200:
            return None, _error_message(response, "Session refresh failed")
        return _session_from_response(response)

    async def get_user(self, access_token: str) -> tuple[Optional[dict], Optional[str]]:
        """Get the user behind an access token, or an error if it is invalid."""
        if not self.is_configured():
            return None, "Authentication not configured"

        try:
            response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        except httpx.HTTPError as e:
            return None, f"Connection error: {e}"

        if response.status_code != 200:
            return None, _error_message(response, "Failed to get user")
        data = _json_body(response)
        if not isinstance(data, dict):
            return None, INVALID_RESPONSE
        return {"id": data.get("id"), "email": data.get("email")}, None

    async def sign_out(self, access_token: str) -> tuple[bool, Optional[str]]:
        """Revoke the session server-side."""
        if not self.is_configured():
            return False, "Authentication not configured"

        try:
            response = await self._request("POST", "/auth/v1/logout", access_token=access_token)
        except httpx.HTTPError as e:
            return False, f"Connection error: {e}"

        if response.status_code in (200, 204):
            return True, None
        return False, _error_message(response, "Sign out failed")

    # -------------------------------------------------------------------------
    # Database rows
    # -------------------------------------------------------------------------

    async def _select(self, table: str, params: dict,
                      access_token: Optional[str] = None) -> tuple[Optional[list], Optional[str]]:
        if not self.is_configured():
            return None, "Database not configured"

        try:
            response = await self._request(
                "GET", f"/rest/v1/{table}", params=params, access_token=access_token,
            )
        except httpx.HTTPError as e:
            return None, f"Connection error: {e}"

        if response.status_code != 200:
            return None, _error_message(response, f"Failed to read {table}")
        rows = _json_body(response)
        if not isinstance(rows, list):
            logger.warning(f"Unexpected {table} response: {response.text[:200]!r}")
            return None, INVALID_RESPONSE
        return rows, None

    async def get_profile(self, access_token: str, user_id: str) -> tuple[Optional[dict], Optional[str]]:
        """Fetch the user's row from the profiles table (carries the role)."""
        rows, error = await self._select(
            "profiles", {"id": f"eq.{user_id}", "select": "*"}, access_token,
        )
        if error:
            return None, error
        if not rows:
            return None, "Profile not found"
        return rows[0], None

    async def list_images(self, access_token: Optional[str]) -> tuple[Optional[list], Optional[str]]:
        """List image rows, newest first."""
        return await self._select(
            "images", {"select": IMAGE_COLUMNS, "order": "created_at.desc"}, access_token,
        )

    async def get_share_link(self, token: str) -> tuple[Optional[dict], Optional[str]]:
        """Resolve a public share token to its share_links row with the image embedded."""
        rows, error = await self._select(
            "share_links",
            {"token": f"eq.{token}", "select": f"id,image_id,token,created_at,created_by,images({IMAGE_COLUMNS})"},
        )
        if error:
            return None, error
        if not rows:
            return None, "Share link not found"
        return rows[0], None


def image_source(service: SupabaseService, access_token: Optional[str]) -> ItemSource:
    """Adapt list_images into a GalleryView item source."""
    async def fetch() -> list[ImageItem]:
        rows, error = await service.list_images(access_token)
        if error:
            raise ItemSourceError(error)
        return [ImageItem.from_row(row) for row in rows]

    return fetch
