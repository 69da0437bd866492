"""
Configuration for the Kline-Martin Photos application.

Contains:
- Server configuration (environment-based)
- Supabase connection settings
- Gallery behavior constants (page size, swipe threshold)

Everything is read from environment variables with sensible defaults so a
fresh checkout runs locally with placeholder images and auth disabled.
"""

import os

# =============================================================================
# Server Configuration (from environment variables)
# =============================================================================

# Network binding
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5001"))

# Debug mode (enables hot reload, verbose logging)
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Public origin used to build the magic link redirect
SITE_URL = os.getenv("SITE_URL", "http://localhost:5001").rstrip("/")

# Locally stored photos (served at /photos/ when no public bucket is set)
PHOTOS_DIR = os.getenv("PHOTOS_DIR", "photos")

# =============================================================================
# Supabase (auth, Postgres). Unset -> auth disabled, placeholder gallery.
# =============================================================================

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-secret-change-in-production")

# Outbound HTTP timeout for Supabase calls
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

# Refresh the Supabase session this long before the access token expires
SESSION_REFRESH_MARGIN_SECONDS = int(os.getenv("SESSION_REFRESH_MARGIN_SECONDS", "60"))

# =============================================================================
# Gallery
# =============================================================================

ITEMS_PER_PAGE = int(os.getenv("ITEMS_PER_PAGE", "20"))

# Minimum horizontal travel (px) before a touch counts as a swipe
SWIPE_THRESHOLD_PX = 50

# Images generated when no database is configured
PLACEHOLDER_IMAGE_COUNT = int(os.getenv("PLACEHOLDER_IMAGE_COUNT", "100"))

# Per-session gallery views kept in memory before the oldest is evicted
MAX_GALLERY_VIEWS = int(os.getenv("MAX_GALLERY_VIEWS", "256"))
