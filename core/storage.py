"""
Storage URLs for gallery images.

Supports two modes:
- Local mode (default): serves from PHOTOS_DIR via the /photos/ app route
- Remote mode: returns public bucket URLs (Backblaze B2 / any S3-style CDN)

Environment variables:
- STORAGE_MODE: "local" (default) or "remote"
- STORAGE_PUBLIC_URL: Base URL for the bucket (e.g., "https://f000.backblazeb2.com/file/photos")
"""

import logging
import os
from urllib.parse import quote

logger = logging.getLogger(__name__)

STORAGE_MODE = os.getenv("STORAGE_MODE", "local")  # "local" or "remote"
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "").rstrip("/")


def is_remote_mode() -> bool:
    """Check if images are served straight from the public bucket."""
    return STORAGE_MODE == "remote" and bool(STORAGE_PUBLIC_URL)


def get_image_url(storage_path: str) -> str:
    """
    Get URL for a stored image.

    Args:
        storage_path: Object key from the images table, e.g.
            "2023/christmas/IMG_0042.jpg" (a leading slash is ignored)

    Returns:
        URL to access the image (either local route or bucket URL)
    """
    key = storage_path.lstrip("/")
    if is_remote_mode():
        return f"{STORAGE_PUBLIC_URL}/{quote(key)}"
    return f"/photos/{quote(key)}"
