"""
Kline-Martin Photos: a private family photo gallery.

Magic-link sign-in, a paginated image grid with a lightbox viewer, share
links and a search stub. Supabase provides auth and the images table.

Gallery state (current page, which image the lightbox shows) lives in a
per-session GalleryView on the server; HTMX posts clicks, key presses and
swipe samples to it and swaps the re-rendered fragments back in.

Error Semantics:
- 303 = Not signed in (full page requests, redirected to /login)
- 401 = Not signed in (HTMX requests)
- 204 = Key press ignored by the lightbox (nothing to swap)
- 404 = Share link or photo not found
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

from fasthtml.common import *
from starlette.responses import FileResponse

from app.auth import (
    AUTH_KEY, VERIFIER_KEY, VIEW_KEY,
    is_auth_enabled, get_current_user, User,
    make_code_verifier, code_challenge_for,
)
from core.config import (
    HOST,
    PORT,
    DEBUG,
    SITE_URL,
    SESSION_SECRET,
    PHOTOS_DIR,
    PLACEHOLDER_IMAGE_COUNT,
)
from core.gallery import GalleryView, GalleryViewRegistry, ItemSource, LoadState
from core.models import ShareLink, UserProfile
from core.pagination import PageWindow
from core.placeholder import get_placeholder_images
from core.search import search_items
from core.supabase import SupabaseService, image_source

logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

project_root = Path(__file__).resolve().parent.parent
photos_path = Path(PHOTOS_DIR) if Path(PHOTOS_DIR).is_absolute() else project_root / PHOTOS_DIR

SITE_NAME = "Kline-Martin Photos"

# Service handles, constructed once here and passed down explicitly
supabase = SupabaseService.from_config()
gallery_views = GalleryViewRegistry()

# Keys the lightbox listens for while it is open
LIGHTBOX_KEY_TRIGGER = "keydown[key=='Escape'||key=='ArrowLeft'||key=='ArrowRight'] from:window"

# How long a loading grid waits before asking again
LOADING_POLL_DELAY = "500ms"

app, rt = fast_app(
    pico=False,
    secret_key=SESSION_SECRET,
    hdrs=(
        Meta(name="viewport", content="width=device-width, initial-scale=1"),
        Script(src="https://cdn.tailwindcss.com"),
        # Hyperscript drives the lightbox scroll lock and key default suppression
        Script(src="https://unpkg.com/hyperscript.org@0.9.12"),
        # Global: a session that expired mid-visit sends HTMX calls back to /login
        Script("""
            document.addEventListener('htmx:beforeSwap', function(evt) {
                if (evt.detail.xhr.status === 401) {
                    evt.detail.shouldSwap = false;
                    window.location.href = '/login';
                }
            });
        """),
        # Global: forward lightbox touch samples; the server decides if it was a swipe
        Script("""
            (function() {
                var startX = null, endX = null;
                function overlay(e) {
                    var box = document.getElementById('lightbox-overlay');
                    return box && box.contains(e.target) ? box : null;
                }
                document.addEventListener('touchstart', function(e) {
                    if (!overlay(e) || !e.touches[0]) return;
                    startX = e.touches[0].clientX;
                    endX = null;
                }, {passive: true});
                document.addEventListener('touchmove', function(e) {
                    if (!overlay(e) || !e.touches[0]) return;
                    endX = e.touches[0].clientX;
                }, {passive: true});
                document.addEventListener('touchend', function(e) {
                    if (overlay(e) && startX !== null && endX !== null) {
                        htmx.ajax('POST', '/gallery/swipe', {
                            target: '#lightbox', swap: 'outerHTML',
                            values: {start_x: startX, end_x: endX}
                        });
                    }
                    startX = null;
                    endX = null;
                });
            })();
        """),
    ),
)


@rt("/photos/{filename:path}")
async def get(filename: str, sess):
    """Serve a locally stored photo. Signed-in users only when auth is enabled."""
    if is_auth_enabled() and not get_current_user(sess):
        return Response("Sign in required", status_code=401, media_type="text/plain")

    root = photos_path.resolve()
    path = (root / filename).resolve()
    if not path.is_relative_to(root) or not path.is_file():
        return Response(f"Photo not found: {filename}", status_code=404, media_type="text/plain")
    return FileResponse(path)


# IMPORTANT: Move photos route to position 0 to take precedence over
# FastHTML's catch-all static route (/{fname:path}.{ext:static})
for i, route in enumerate(app.routes):
    if getattr(route, "path", None) == "/photos/{filename:path}":
        photos_route = app.routes.pop(i)
        app.routes.insert(0, photos_route)
        break


# =============================================================================
# SESSION HELPERS
# =============================================================================

async def _check_login(sess, request=None) -> Response | None:
    """Return a redirect/401 Response if the user is not signed in, else None.
    When auth is disabled, always allows access.
    An access token close to expiry is refreshed first; a rejected refresh
    signs the user out.
    HTMX requests get 401 so the global beforeSwap handler can redirect."""
    if not is_auth_enabled():
        return None
    user = get_current_user(sess or {})
    if user and await _keep_session_fresh(sess, user):
        return None
    if request is not None and request.headers.get("HX-Request"):
        return Response("", status_code=401)
    return RedirectResponse("/login", status_code=303)


async def _keep_session_fresh(sess, user: User) -> bool:
    """Renew an expiring access token. Returns False (session cleared) if that fails."""
    if not user.token_expiring(time.time()):
        return True

    if not user.refresh_token:
        session, error = None, "no refresh token"
    else:
        session, error = await supabase.refresh_session(user.refresh_token)
    if error:
        logger.warning(f"Session refresh failed for {user.email}: {error}")
        _clear_session(sess)
        return False

    user.access_token = session["access_token"]
    user.refresh_token = session.get("refresh_token") or user.refresh_token
    user.expires_at = session["expires_at"]
    sess[AUTH_KEY] = user.to_session()
    logger.info(f"Refreshed session for {user.email}")
    return True


def _clear_session(sess) -> None:
    view_id = sess.get(VIEW_KEY)
    if view_id:
        gallery_views.discard(view_id)
    sess.clear()


def get_item_source(sess) -> ItemSource:
    """Where this session's gallery loads its images from."""
    if not is_auth_enabled():
        return lambda: get_placeholder_images(PLACEHOLDER_IMAGE_COUNT)
    user = get_current_user(sess)
    return image_source(supabase, user.access_token if user else None)


def _gallery_view(sess) -> GalleryView:
    view_id = sess.get(VIEW_KEY)
    if not view_id:
        view_id = uuid.uuid4().hex
        sess[VIEW_KEY] = view_id
    return gallery_views.get_or_create(view_id, get_item_source(sess))


# =============================================================================
# COMPONENTS
# =============================================================================

PHOTO_ICON_PATH = (
    "M4 16l4.586-4.586a2 2 0 012.828 0L16 16m-2-2l1.586-1.586a2 2 0 012.828 0L20 14"
    "m-6-6h.01M6 20h12a2 2 0 002-2V6a2 2 0 00-2-2H6a2 2 0 00-2 2v12a2 2 0 002 2z"
)


def _icon(path_d: str, size: str = "h-6 w-6", stroke_width: int = 2) -> NotStr:
    return NotStr(
        f'<svg class="{size}" fill="none" stroke="currentColor" viewBox="0 0 24 24">'
        f'<path stroke-linecap="round" stroke-linejoin="round" stroke-width="{stroke_width}" d="{path_d}"/></svg>'
    )


def user_profile(user: User | None) -> Div:
    """Header badge: email, role and sign-out. Guests (auth disabled) get a label only."""
    if user is None:
        return Div(Span("Guest", cls="text-xs text-gray-400"), cls="flex items-center")
    role_label = "\U0001F464 Admin" if user.is_admin else "\U0001F441 Viewer"
    return Div(
        Div(
            P(user.email, cls="text-sm font-medium text-gray-900"),
            P(role_label, cls="text-xs text-gray-600"),
            cls="text-right",
        ),
        sign_out_button(),
        cls="flex items-center gap-3",
    )


def sign_out_button() -> Form:
    return Form(
        Button(
            "Sign Out",
            type="submit",
            cls="inline-block rounded-md bg-gray-200 px-3 py-1 text-sm text-gray-700 "
                "hover:bg-gray-300 transition-colors",
        ),
        method="post", action="/logout",
    )


def gallery_header(user: User | None, query: str = "") -> Header:
    return Header(
        Div(
            A(SITE_NAME, href="/gallery", cls="text-sm font-medium text-gray-900"),
            Form(
                Input(type="search", name="q", value=query, placeholder="Search photos",
                      aria_label="Search photos",
                      cls="w-48 sm:w-64 rounded-md border border-gray-200 px-3 py-1 text-sm "
                          "focus:border-gray-900 focus:outline-none"),
                method="get", action="/search",
            ),
            user_profile(user),
            cls="mx-auto flex h-14 max-w-7xl items-center justify-between gap-4 px-4",
        ),
        cls="sticky top-0 z-10 border-b border-gray-100 bg-white/80 backdrop-blur-sm",
    )


def gallery_layout(user: User | None, *content, query: str = "") -> Div:
    return Div(
        gallery_header(user, query=query),
        Main(*content, cls="mx-auto max-w-7xl px-4 py-6"),
        cls="min-h-screen bg-white",
    )


def image_card(item) -> Button:
    """One grid tile. Clicking it opens the lightbox on this image."""
    return Button(
        Img(
            src=item.url,
            alt=item.display_title,
            loading="lazy",
            cls="h-full w-full object-cover transition-transform duration-300 group-hover:scale-105",
        ),
        Div(
            P(item.title, cls="w-full truncate px-3 py-2 text-sm text-white"),
            cls="absolute inset-0 flex items-end bg-gradient-to-t from-black/40 to-transparent "
                "opacity-0 transition-opacity duration-200 group-hover:opacity-100",
        ) if item.title else None,
        type="button",
        cls="group relative h-full w-full overflow-hidden rounded-lg bg-gray-100 transition-all "
            "duration-300 hover:shadow-md focus:outline-none focus:ring-2 focus:ring-gray-900 focus:ring-offset-2",
        hx_post=f"/gallery/select/{quote(item.id)}",
        hx_target="#lightbox",
        hx_swap="outerHTML",
        data_image_id=item.id,
    )


def grid_skeleton(count: int = 10) -> Div:
    return Div(
        *[Div(cls="aspect-square animate-pulse rounded-lg bg-gray-100") for _ in range(count)],
        cls="grid grid-cols-2 gap-2 sm:grid-cols-3 sm:gap-3 md:grid-cols-4 md:gap-4 lg:grid-cols-5",
    )


def empty_state(message: str = "No images found") -> Div:
    return Div(
        _icon(PHOTO_ICON_PATH, size="mb-4 h-12 w-12 text-gray-300", stroke_width=1),
        P(message, cls="text-gray-500"),
        cls="flex flex-col items-center justify-center py-12 text-center",
    )


def error_state(error: str | None) -> Div:
    return Div(
        P("We couldn't load the gallery.", cls="text-sm font-medium text-red-700"),
        P(error or "Unknown error", cls="mt-1 text-xs text-red-600"),
        Button(
            "Try Again",
            type="button",
            cls="mt-3 rounded-md bg-gray-900 px-4 py-2 text-sm font-medium text-white hover:bg-gray-800",
            hx_post="/gallery/refresh",
            hx_target="#gallery-grid",
            hx_swap="outerHTML",
        ),
        cls="rounded-md bg-red-50 p-4",
        role="alert",
    )


def pagination_controls(pagination: PageWindow) -> Div:
    """Previous / Page X of Y / Next. Buttons disable at either end."""
    def page_button(label: str, page: int, enabled: bool, aria_label: str) -> Button:
        return Button(
            label,
            type="button",
            disabled=not enabled,
            aria_label=aria_label,
            cls="rounded-md px-3 py-1 text-sm text-gray-700 hover:bg-gray-100 "
                "disabled:cursor-not-allowed disabled:text-gray-300",
            hx_get=f"/gallery/grid?page={page}",
            hx_target="#gallery-grid",
            hx_swap="outerHTML",
            hx_push_url=f"/gallery?page={page}",
        )

    current = pagination.current_page
    return Nav(
        page_button("Previous", current - 1, pagination.can_go_previous, "Previous page"),
        Span(f"Page {current} of {pagination.total_pages}", cls="text-sm text-gray-500"),
        page_button("Next", current + 1, pagination.can_go_next, "Next page"),
        cls="flex items-center justify-center gap-4 py-8",
        aria_label="Pagination",
    )


def grid_loading(page: int, delay: str | None = None) -> Div:
    """Skeleton that asks for the grid fragment once it is on the page (after ``delay``)."""
    return Div(
        grid_skeleton(),
        Div(P("Loading gallery...", cls="text-sm text-gray-500"), cls="flex justify-center py-8"),
        id="gallery-grid",
        hx_get=f"/gallery/grid?page={page}",
        hx_trigger=f"load delay:{delay}" if delay else "load",
        hx_swap="outerHTML",
    )


def gallery_grid(view: GalleryView, page: int | None = None) -> Div:
    """The visible slice for the current page, or the loading/error/empty state."""
    if view.state in (LoadState.IDLE, LoadState.LOADING):
        # Another request's fetch is in flight; poll until it settles
        return grid_loading(page or view.pagination.current_page, delay=LOADING_POLL_DELAY)
    if view.state == LoadState.FAILED:
        content = error_state(view.error)
    elif not view.visible_items:
        content = empty_state()
    else:
        content = Div(
            *[Div(image_card(item), cls="aspect-square") for item in view.visible_items],
            cls="grid grid-cols-2 gap-2 sm:grid-cols-3 sm:gap-3 md:grid-cols-4 md:gap-4 lg:grid-cols-5 lg:gap-4",
        )
    show_pages = view.state == LoadState.READY and view.pagination.total_pages > 1
    return Div(
        content,
        pagination_controls(view.pagination) if show_pages else None,
        id="gallery-grid",
        cls="space-y-6",
    )


def lightbox(view: GalleryView | None, oob: bool = False) -> Div:
    """
    Full-screen viewer for the image under the cursor.

    While open, the overlay listens for Escape/ArrowLeft/ArrowRight on the
    window. HTMX drops that listener as soon as the overlay leaves the DOM,
    so a closed lightbox holds no key listener at all.
    """
    extra = {"hx_swap_oob": "true"} if oob else {}
    item = view.current_item if view is not None else None
    if item is None:
        return Div(id="lightbox", _="init remove .overflow-hidden from body", **extra)

    cursor = view.cursor
    nav_cls = ("absolute top-1/2 z-10 -translate-y-1/2 rounded-full p-3 text-white/70 transition-colors "
               "hover:bg-white/10 hover:text-white focus:outline-none focus:ring-2 focus:ring-white/50")
    return Div(
        Div(
            # Backdrop - click to close
            Div(cls="absolute inset-0", hx_post="/gallery/close", hx_target="#lightbox", hx_swap="outerHTML"),
            Button(
                _icon("M6 18L18 6M6 6l12 12"),
                type="button",
                aria_label="Close lightbox",
                cls="absolute right-4 top-4 z-10 rounded-full p-2 text-white/70 transition-colors "
                    "hover:bg-white/10 hover:text-white focus:outline-none focus:ring-2 focus:ring-white/50",
                hx_post="/gallery/close", hx_target="#lightbox", hx_swap="outerHTML",
            ),
            Button(
                _icon("M15 19l-7-7 7-7", size="h-8 w-8"),
                type="button",
                aria_label="Previous image",
                cls=f"left-4 {nav_cls}",
                hx_post="/gallery/key", hx_vals='{"key": "ArrowLeft"}',
                hx_target="#lightbox", hx_swap="outerHTML",
            ) if cursor.can_go_previous else None,
            Button(
                _icon("M9 5l7 7-7 7", size="h-8 w-8"),
                type="button",
                aria_label="Next image",
                cls=f"right-4 {nav_cls}",
                hx_post="/gallery/key", hx_vals='{"key": "ArrowRight"}',
                hx_target="#lightbox", hx_swap="outerHTML",
            ) if cursor.can_go_next else None,
            Div(
                Img(src=item.url, alt=item.display_title,
                    cls="max-h-[85vh] max-w-[90vw] object-contain"),
                Div(
                    P(item.title, cls="text-sm text-white") if item.title else None,
                    P(f"{cursor.current_index + 1} / {cursor.length}", cls="text-xs text-white/60"),
                    cls="mt-3 text-center",
                ),
                cls="relative flex flex-col items-center",
            ),
            id="lightbox-overlay",
            role="dialog",
            aria_modal="true",
            aria_label="Image lightbox",
            cls="fixed inset-0 z-50 flex items-center justify-center bg-black/95",
            hx_post="/gallery/key",
            hx_trigger=LIGHTBOX_KEY_TRIGGER,
            hx_vals="js:{key: event.key}",
            hx_target="#lightbox",
            hx_swap="outerHTML",
        ),
        id="lightbox",
        data_index=str(cursor.current_index),
        _="init add .overflow-hidden to body "
          "on keydown from window "
          "if event.key is 'Escape' or event.key is 'ArrowLeft' or event.key is 'ArrowRight' "
          "halt the event's default end",
        **extra,
    )


LOGIN_ERRORS = {
    "missing_code": "That sign-in link is incomplete. Please request a new one.",
    "otp_expired": "This link has expired. Please request a new one.",
    "access_denied": "There was a problem with your login link. Please try again.",
}


def login_form(email: str = "", state: str = "idle", error: str | None = None) -> Form:
    """
    Magic link form.

    States: idle -> (submit) -> success | error. Success disables the form
    until the page is reloaded; error allows another try.
    """
    done = state == "success"
    labels = {"idle": "Send Magic Link", "success": "Check your email", "error": "Try Again"}
    return Form(
        Div(
            Label("Email address", fr="email", cls="block text-sm font-medium text-gray-700"),
            Input(
                type="email", name="email", id="email", value=email, required=True,
                placeholder="you@example.com", disabled=done,
                cls="mt-1 w-full rounded-md border border-gray-300 px-3 py-2 text-sm placeholder-gray-400 "
                    "shadow-sm focus:border-gray-900 focus:outline-none focus:ring-1 focus:ring-gray-900 "
                    "disabled:bg-gray-50 disabled:text-gray-500",
            ),
        ),
        Button(
            labels.get(state, labels["idle"]),
            type="submit",
            disabled=done,
            cls="w-full rounded-md bg-gray-900 px-4 py-2 text-sm font-medium text-white transition-colors "
                "hover:bg-gray-800 disabled:cursor-not-allowed disabled:bg-gray-400",
        ),
        P("Sending link...", cls="htmx-indicator text-center text-xs text-gray-500"),
        Div(P(error, cls="text-sm text-red-700"), cls="rounded-md bg-red-50 p-3")
        if state == "error" and error else None,
        Div(
            P("Check your email for the magic link. It may take a minute to arrive.",
              cls="text-sm text-green-700"),
            cls="rounded-md bg-green-50 p-3",
        ) if done else None,
        id="login-form",
        cls="space-y-4",
        method="post", action="/login",
        hx_post="/login", hx_target="this", hx_swap="outerHTML",
    )


def auth_layout(*content) -> Div:
    return Div(
        Div(*content, cls="w-full max-w-sm"),
        cls="flex min-h-screen items-center justify-center bg-gray-50 p-4",
    )


# =============================================================================
# ROUTES - PUBLIC
# =============================================================================

@rt("/api/health")
def get():
    """Health check for monitoring and load balancers."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@rt("/")
def get(sess):
    """Landing page. Signed-in users go straight to the gallery."""
    if is_auth_enabled() and get_current_user(sess):
        return RedirectResponse("/gallery", status_code=303)

    target, label = ("/login", "Sign In") if is_auth_enabled() else ("/gallery", "View Gallery")
    return Title(SITE_NAME), Main(
        Div(
            H1(SITE_NAME, cls="mb-4 text-3xl font-light tracking-tight text-gray-900"),
            P("A private gallery for our family memories.", cls="mb-8 text-gray-600"),
            A(label, href=target,
              cls="inline-block rounded-md bg-gray-900 px-6 py-3 text-sm font-medium text-white "
                  "transition-colors hover:bg-gray-800"),
            cls="max-w-md text-center",
        ),
        cls="flex min-h-screen flex-col items-center justify-center p-8",
    )


@rt("/share/{token}")
async def get(token: str):
    """Public share link: a single image, no gallery access, no metadata."""
    if not is_auth_enabled():
        # No database: show the frame so the link format can be checked
        return Title(f"Shared photo - {SITE_NAME}"), auth_layout(
            Div(
                Div(f"Shared image (token: {token})",
                    cls="flex h-full items-center justify-center text-sm text-gray-400"),
                cls="aspect-video rounded-lg bg-gray-200",
            ),
        )

    row, error = await supabase.get_share_link(token)
    link = ShareLink.from_row(row) if row else None
    if link is None or link.image is None:
        logger.info(f"Share link {token!r} not resolved: {error}")
        return Response(
            to_xml(auth_layout(P("This link is invalid or has expired.", cls="text-sm text-gray-500"))),
            status_code=404,
            media_type="text/html",
        )

    return Title(f"Shared photo - {SITE_NAME}"), Div(
        Img(src=link.image.url, alt="Shared photo", cls="max-h-[85vh] max-w-full rounded-lg object-contain"),
        cls="flex min-h-screen items-center justify-center bg-gray-50 p-4",
    )


# =============================================================================
# ROUTES - AUTH
# =============================================================================

@rt("/login")
def get(sess, error: str = ""):
    """Magic link login page. Redirects to the gallery if signed in or auth disabled."""
    if not is_auth_enabled():
        return RedirectResponse("/gallery", status_code=303)
    if get_current_user(sess):
        return RedirectResponse("/gallery", status_code=303)

    message = LOGIN_ERRORS.get(error, error) if error else None
    return Title(f"Sign In - {SITE_NAME}"), auth_layout(
        H1(SITE_NAME, cls="mb-2 text-2xl font-light text-gray-900"),
        P("Sign in with a link sent to your email.", cls="mb-6 text-sm text-gray-500"),
        login_form(state="error" if message else "idle", error=message),
    )


@rt("/login")
async def post(email: str, sess):
    """Send the magic link. Keeps the PKCE verifier in the session for the callback."""
    email = email.strip()
    verifier = make_code_verifier()
    sess[VERIFIER_KEY] = verifier

    ok, error = await supabase.send_magic_link(
        email,
        redirect_to=f"{SITE_URL}/auth/callback",
        code_challenge=code_challenge_for(verifier),
    )
    if not ok:
        logger.info(f"Magic link request failed: {error}")
        return login_form(email=email, state="error", error=error or "An unexpected error occurred")
    return login_form(email=email, state="success")


@rt("/auth/callback")
async def get(sess, code: str = "", error_description: str = ""):
    """
    Magic link landing: exchange ?code= for a session, then load the profile role.

    Supabase appends ?error_description=... instead of a code when the link
    is stale or was already used.
    """
    if not code:
        reason = error_description or "missing_code"
        return RedirectResponse(f"/login?error={quote(reason)}", status_code=303)

    verifier = sess.pop(VERIFIER_KEY, "")
    session, error = await supabase.exchange_code_for_session(code, verifier)
    if error:
        logger.warning(f"Code exchange failed: {error}")
        return RedirectResponse(f"/login?error={quote(error)}", status_code=303)

    access_token = session["access_token"]
    user_data = session["user"]
    role = "viewer"
    profile_row, profile_error = await supabase.get_profile(access_token, user_data["id"])
    if profile_row:
        role = UserProfile.from_row(profile_row).role
    else:
        logger.warning(f"No profile for user {user_data['id']}: {profile_error}")

    user = User(
        id=user_data["id"], email=user_data.get("email") or "", role=role, access_token=access_token,
        refresh_token=session.get("refresh_token") or "", expires_at=session.get("expires_at") or 0,
    )
    sess[AUTH_KEY] = user.to_session()
    logger.info(f"Signed in {user.email} ({role})")
    return RedirectResponse("/gallery", status_code=303)


async def _sign_out(sess):
    user = get_current_user(sess)
    if user and user.access_token and supabase.is_configured():
        ok, error = await supabase.sign_out(user.access_token)
        if not ok:
            # Local session is cleared either way; the token simply expires
            logger.warning(f"Supabase sign-out failed: {error}")
    _clear_session(sess)
    return RedirectResponse("/login", status_code=303)


@rt("/logout")
async def get(sess):
    """Sign out and return to the login page."""
    return await _sign_out(sess)


@rt("/logout")
async def post(sess):
    """Sign out (form submission from the header button)."""
    return await _sign_out(sess)


# =============================================================================
# ROUTES - GALLERY
# =============================================================================
# Handlers that touch a GalleryView are async so they all run on the event
# loop; a view is only ever mutated from that one thread.

@rt("/gallery")
async def get(request, sess, page: int = 1):
    """Gallery shell. The grid loads via HTMX behind a skeleton."""
    block = await _check_login(sess, request)
    if block:
        return block

    user = get_current_user(sess)
    return Title(f"Gallery - {SITE_NAME}"), gallery_layout(
        user,
        H1("Gallery", cls="mb-6 text-2xl font-light text-gray-900"),
        grid_loading(page),
        lightbox(None),
    )


@rt("/gallery/grid")
async def get(request, sess, page: int | None = None):
    """Grid fragment for a page. The first request for a session performs the fetch."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    if view.state == LoadState.IDLE:
        await view.refresh()
    if page is not None:
        view.pagination.go_to_page(page)
    return gallery_grid(view, page=page), lightbox(view, oob=True)


@rt("/gallery/refresh")
async def post(request, sess):
    """Re-fetch the images. Always lands back on page 1."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    await view.refresh()
    return gallery_grid(view), lightbox(view, oob=True)


@rt("/gallery/select/{item_id}")
async def post(item_id: str, request, sess):
    """Open the lightbox on an image of the current page."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    view.select(item_id)
    return lightbox(view)


@rt("/gallery/key")
async def post(request, sess, key: str = ""):
    """Deliver a key press to the lightbox. 204 when nothing handled it."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    event = view.press_key(key)
    if not event.default_prevented:
        return Response(status_code=204)
    return lightbox(view)


@rt("/gallery/swipe")
async def post(request, sess, start_x: float | None = None, end_x: float | None = None):
    """Replay a touch gesture captured on the lightbox overlay."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    view.swipe(start_x, end_x)
    return lightbox(view)


@rt("/gallery/close")
async def post(request, sess):
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    view.close()
    return lightbox(view)


@rt("/search")
async def get(request, sess, q: str = ""):
    """Search the gallery. Keyword matching until embedding search is connected."""
    block = await _check_login(sess, request)
    if block:
        return block

    view = _gallery_view(sess)
    if view.state == LoadState.IDLE:
        await view.refresh()

    user = get_current_user(sess)
    results = search_items(view.items, q) if q.strip() else []
    if view.state == LoadState.FAILED:
        body = error_state(view.error)
    elif view.state == LoadState.LOADING:
        body = empty_state("The gallery is still loading. Try again in a moment.")
    elif not q.strip():
        body = empty_state("Type something to search for")
    elif not results:
        body = empty_state(f'No photos match "{q}"')
    else:
        body = Div(
            *[
                Div(
                    Img(src=r.item.url, alt=r.item.display_title, loading="lazy",
                        cls="aspect-square w-full rounded-lg object-cover"),
                    P(r.item.display_title, cls="mt-1 truncate text-sm text-gray-900"),
                    P(f"{round(r.similarity * 100)}% match", cls="text-xs text-gray-500"),
                    data_image_id=r.item.id,
                )
                for r in results
            ],
            cls="grid grid-cols-2 gap-2 sm:grid-cols-3 sm:gap-3 md:grid-cols-4 md:gap-4 lg:grid-cols-5 lg:gap-4",
        )

    return Title(f"Search - {SITE_NAME}"), gallery_layout(
        user,
        H1("Search", cls="mb-2 text-2xl font-light text-gray-900"),
        P(f"{len(results)} results" if q.strip() else "", cls="mb-6 text-sm text-gray-500"),
        body,
        query=q,
    )


if __name__ == "__main__":
    logger.info("=" * 60)
    logger.info(f"Auth: {'Supabase' if is_auth_enabled() else 'disabled (placeholder gallery)'}")
    logger.info(f"Photos directory: {photos_path}")
    logger.info(f"Server starting at http://{HOST}:{PORT}")
    logger.info("=" * 60)

    serve(host=HOST, port=PORT, reload=DEBUG)
