"""Content models mirrored from Google Sheets and Drive.

Every table carries a unique `source_id`: the identity key the sync core
matches candidates on (sheet field name, sheet row id, Drive file id or
Drive folder id, always stored as a string).
"""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SiteSetting(SQLModel, table=True):
    """One row per field of the site settings sheet."""

    id: Optional[int] = Field(default=None, primary_key=True)
    source_id: str = Field(unique=True, index=True)  # the "Field" column
    value_json: str = "\"\""  # str or bool, JSON-encoded
    link: str = ""
    source_sheet: str = ""

    last_synced_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Product(SQLModel, table=True):
    """One row per product line of the products sheet."""

    id: Optional[int] = Field(default=None, primary_key=True)
    source_id: str = Field(unique=True, index=True)
    title: str
    summary: str = ""
    product_type: str = "Soft"  # "Physical", "Soft", "Physical + Soft"
    price_inr: str = ""
    price_usd: str = ""
    iframe: str = ""
    image_url: str = ""
    driver_gif_path: str = ""
    drive_path: str = ""
    blog_order: str = ""
    status: str = Field(default="Active", index=True)
    demo_link: str = ""
    solution_link: str = ""
    sheets_row_number: Optional[int] = None

    last_synced_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Blog(SQLModel, table=True):
    """One row per Google Doc / DOCX file in the blogs folder."""

    id: Optional[int] = Field(default=None, primary_key=True)
    source_id: str = Field(unique=True, index=True)  # Drive file id
    title: str
    slug: str = Field(unique=True, index=True)
    content: str
    excerpt: Optional[str] = None
    featured_image: str = ""
    images_json: str = "[]"  # [{"url", "caption", "position"}]
    drive_file_name: str = ""
    author: str = "Admin"
    category: str = "Blog"
    status: str = Field(default="published", index=True)  # draft, published, archived
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None

    # Local-only counters, never overwritten by a sync
    views: int = 0
    likes: int = 0

    last_synced_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Book(SQLModel, table=True):
    """One row per sub-folder of the books folder."""

    id: Optional[int] = Field(default=None, primary_key=True)
    source_id: str = Field(unique=True, index=True)  # Drive folder id
    title: str
    slug: str = Field(unique=True, index=True)
    excerpt: str = ""
    cover_image: str = ""
    chapters: str = ""
    drive_folder_name: str = ""
    drive_files_json: str = "{}"  # ids of the cover/excerpt/chapters/settings files
    author: str = "Admin"
    category: str = "Book"
    status: str = Field(default="published", index=True)
    is_paid: bool = False
    price: float = 0.0
    currency: str = "USD"
    book_settings_json: str = "{}"
    pricing_info_json: str = "{}"

    views: int = 0
    likes: int = 0

    last_synced_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
