"""
Records exchanged with the database: images, search hits, profiles, share links.

Rows arrive from Supabase with snake_case columns; the dataclasses here are
immutable views of them. Embedding columns are never selected.
"""

from dataclasses import dataclass, field
from typing import Optional

from core import storage


@dataclass(frozen=True)
class ImageItem:
    id: str
    filename: str
    storage_path: str
    title: Optional[str] = None
    keywords: tuple[str, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    # Explicit display URL (placeholders); otherwise derived from storage_path
    image_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ImageItem":
        return cls(
            id=str(row["id"]),
            filename=row.get("filename") or "",
            storage_path=row.get("storage_path") or "",
            title=row.get("title"),
            keywords=tuple(row.get("keywords") or ()),
            created_at=row.get("created_at") or "",
            updated_at=row.get("updated_at") or "",
        )

    @property
    def display_title(self) -> str:
        return self.title or self.filename

    @property
    def url(self) -> str:
        if self.image_url:
            return self.image_url
        return storage.get_image_url(self.storage_path)


@dataclass(frozen=True)
class SearchResult:
    item: ImageItem
    similarity: float


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str = ""
    role: str = "viewer"  # "viewer" | "admin"
    created_at: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "UserProfile":
        return cls(
            id=str(row["id"]),
            email=row.get("email") or "",
            role=row.get("role") or "viewer",
            created_at=row.get("created_at") or "",
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class ShareLink:
    id: str
    image_id: str
    token: str
    created_at: str = ""
    created_by: str = ""
    image: Optional[ImageItem] = field(default=None, compare=False)

    @classmethod
    def from_row(cls, row: dict) -> "ShareLink":
        # PostgREST embeds the joined image row under its table name
        image_row = row.get("images")
        return cls(
            id=str(row["id"]),
            image_id=str(row.get("image_id") or ""),
            token=row.get("token") or "",
            created_at=row.get("created_at") or "",
            created_by=str(row.get("created_by") or ""),
            image=ImageItem.from_row(image_row) if image_row else None,
        )
