"""
Placeholder images for local development.

Used as the gallery's item source when Supabase is not configured, so the
grid, pagination and lightbox can be exercised without a database or bucket.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone

from core.models import ImageItem

KEYWORD_SAMPLES = [
    ("christmas", "holiday", "2023"),
    ("beach", "vacation", "summer"),
    ("hiking", "mountain", "adventure"),
    ("family", "portrait", "reunion"),
    ("snow", "winter", "cold"),
    ("garden", "flowers", "spring"),
    ("sunset", "evening", "golden"),
    ("forest", "nature", "hiking"),
    ("picnic", "outdoor", "food"),
    ("birthday", "celebration", "party"),
]

# Spread of fake creation dates
MAX_AGE_DAYS = 90


def generate_placeholder_images(count: int = 20) -> list[ImageItem]:
    """Build ``count`` placeholder items with ids placeholder-0 .. placeholder-{count-1}."""
    now = datetime.now(timezone.utc)
    images = []
    for i in range(count):
        created_at = now - timedelta(days=random.random() * MAX_AGE_DAYS)
        images.append(ImageItem(
            id=f"placeholder-{i}",
            filename=f"placeholder-{i}.jpg",
            storage_path=f"/placeholder/{i}",
            title=f"Image {i + 1}",
            keywords=KEYWORD_SAMPLES[i % len(KEYWORD_SAMPLES)],
            created_at=created_at.isoformat(),
            updated_at=now.isoformat(),
            image_url=f"https://images.unsplash.com/photo-1{1000000000 + i}?w=500&h=500&fit=crop",
        ))
    return images


async def get_placeholder_images(count: int = 20) -> list[ImageItem]:
    """Async item source with a small delay, like a real database round trip."""
    await asyncio.sleep(0.1)
    return generate_placeholder_images(count)


# Sample URLs per category, for exercising specific scenarios
PLACEHOLDER_CATEGORIES = {
    "nature": [
        "https://images.unsplash.com/photo-1441974231531-c6227db76b6e?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1469022563149-aa64dbd37dae?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=500&h=500&fit=crop",
    ],
    "family": [
        "https://images.unsplash.com/photo-1511578314322-379afb476865?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1543269865-cbf427effbad?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1503454537688-e6c8ff1d9c89?w=500&h=500&fit=crop",
    ],
    "beach": [
        "https://images.unsplash.com/photo-1507525428034-b723cf961d3e?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1519046904884-53103b34b206?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1439405326854-014607f694d7?w=500&h=500&fit=crop",
    ],
    "sunset": [
        "https://images.unsplash.com/photo-1495567720989-cebdbdd97913?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1495616811223-4d98c6e9c869?w=500&h=500&fit=crop",
        "https://images.unsplash.com/photo-1476514525535-07fb3b4ae5f1?w=500&h=500&fit=crop",
    ],
}
