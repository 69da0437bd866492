"""
Authentication helpers: session user, route guards, magic link PKCE.

Permission levels:
- Public: landing page, login, share links, health
- Viewer: the gallery and search (login required)
- Admin: same as viewer for now; the role is shown in the header

Sign-in is passwordless. /login asks Supabase to email a magic link; the link
lands on /auth/callback?code=..., which is exchanged for a session using the
PKCE verifier kept in our session cookie. The access token lasts about an
hour; protected routes renew it with the refresh token shortly before it
expires.

When SUPABASE_URL is not set, auth is disabled and all routes are accessible.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from core.config import SESSION_REFRESH_MARGIN_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL

# Session keys
AUTH_KEY = "auth"
VERIFIER_KEY = "pkce_verifier"
VIEW_KEY = "gallery_view"


def is_auth_enabled() -> bool:
    """Check if authentication is configured."""
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY)


@dataclass
class User:
    id: str
    email: str
    role: str = "viewer"
    access_token: str = ""
    refresh_token: str = ""
    # Unix time the access token expires; 0 when unknown
    expires_at: int = 0

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def token_expiring(self, now: float, margin: int = SESSION_REFRESH_MARGIN_SECONDS) -> bool:
        """True when the access token is expired or within ``margin`` seconds of it."""
        return bool(self.expires_at) and now >= self.expires_at - margin

    @classmethod
    def from_session(cls, session_data: dict) -> "User | None":
        if not session_data:
            return None
        return cls(
            id=session_data.get("id", ""),
            email=session_data.get("email", ""),
            role=session_data.get("role", "viewer"),
            access_token=session_data.get("access_token", ""),
            refresh_token=session_data.get("refresh_token", ""),
            expires_at=int(session_data.get("expires_at") or 0),
        )

    def to_session(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }


def get_current_user(session: dict) -> User | None:
    """Get the current user from session, or None if not logged in."""
    user_data = session.get(AUTH_KEY)
    return User.from_session(user_data) if user_data else None


# =============================================================================
# PKCE (RFC 7636)
# =============================================================================

def make_code_verifier() -> str:
    """Random 43+ char verifier, URL-safe."""
    return secrets.token_urlsafe(48)


def code_challenge_for(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
