"""
Google Drive readers: blogs and books.

Blogs: every Google Doc or DOCX file directly inside BLOGS_FOLDER_ID is one
blog. Google Docs are exported as HTML; DOCX files are downloaded and
converted with mammoth.

Books: every sub-folder of BOOKS_FOLDER_ID is one book. Inside a folder we
look for:

  - a cover image (first .jpg/.jpeg/.png/.gif/.bmp/.webp)
  - an excerpt document  (name contains excerpt/summary/description/intro/overview)
  - a chapters document  (name contains chapters/content/text/body/main/book/story)
  - a settings spreadsheet (name contains "setting"), read as key/value rows

If neither document matches by name, the first two documents in the folder
are used as excerpt and chapters. Folders with no usable document are
skipped. Office temp files (~$...) are ignored everywhere.

A document that fails to convert is skipped and logged; a Drive API
failure (SourceUnavailable) is not, it fails the whole read.
"""
import io
import json
import logging
import re
from typing import Any, Dict, List, Optional

import mammoth

from contentsync.config import Settings
from contentsync.sources.google_client import (
    DOCX_MIME,
    FOLDER_MIME,
    GOOGLE_DOC_MIME,
    GOOGLE_SHEET_MIME,
    GoogleWorkspaceClient,
    a1_range,
)
from contentsync.sources.normalizer import (
    book_cover_url,
    build_excerpt,
    build_pricing_info,
    cell,
    extract_images,
    first_wins,
    generate_slug,
    parse_currency,
    parse_price,
)
from contentsync.sync.errors import ConfigurationError, SourceEmpty, SourceUnavailable
from contentsync.sync.records import CandidateRecord, RecordKind

logger = logging.getLogger(__name__)

IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|bmp|webp)$", re.IGNORECASE)
WORD_RE = re.compile(r"\.(doc|docx)$", re.IGNORECASE)
EXCEL_RE = re.compile(r"\.(xlsx|xls)$", re.IGNORECASE)

DOCUMENT_PATTERNS = {
    "excerpt": ("excerpt", "summary", "description", "intro", "overview"),
    "chapters": ("chapters", "content", "text", "body", "main", "book", "story"),
}

EXCERPT_TEXT_LIMIT = 500
EXCERPT_FALLBACK_HTML_LIMIT = 2000


# ── Blogs ─────────────────────────────────────────────────────────────────────

async def read_blogs(client: GoogleWorkspaceClient, settings: Settings) -> List[CandidateRecord]:
    """
    Read every blog document in the blogs folder, newest first.

    Raises:
        ConfigurationError: BLOGS_FOLDER_ID is not set.
        SourceUnavailable: a Drive API call failed.
        SourceEmpty: the folder holds no documents.
    """
    folder_id = settings.blogs_folder_id
    if not folder_id:
        raise ConfigurationError("BLOGS_FOLDER_ID is not set")

    files = await client.list_files(
        query=(
            f"'{folder_id}' in parents and "
            f"(mimeType='{DOCX_MIME}' or mimeType='{GOOGLE_DOC_MIME}') and trashed=false"
        ),
        fields="id, name, modifiedTime, size, mimeType",
        order_by="modifiedTime desc",
    )
    if not files:
        raise SourceEmpty(f"No documents in blogs folder {folder_id}")
    logger.info("Found %d documents in blogs folder", len(files))

    blogs = []
    for file in files:
        html = await _document_html(client, file)
        if html is None:
            continue
        blogs.append(CandidateRecord(kind=RecordKind.BLOG, fields=blog_fields(file, html)))

    logger.info("Read %d blogs from Drive", len(blogs))
    return blogs


def blog_fields(file: Dict[str, Any], html: str) -> Dict[str, Any]:
    """Normalize a Drive document and its HTML into Blog column dict."""
    title = re.sub(r"\.docx$", "", file["name"], flags=re.IGNORECASE)
    images = extract_images(html)
    return {
        "drive_file_id": file["id"],
        "drive_file_name": file["name"],
        "title": title,
        "slug": generate_slug(title) or file["id"],
        "content": html,
        "featured_image": images[0]["url"] if images else "",
        "images_json": json.dumps(images),
        "author": "Admin",
        "category": "Blog",
        "status": "published",
    }


# ── Books ─────────────────────────────────────────────────────────────────────

async def read_books(client: GoogleWorkspaceClient, settings: Settings) -> List[CandidateRecord]:
    """
    Read every book folder under the books folder, newest first.

    Raises:
        ConfigurationError: BOOKS_FOLDER_ID is not set.
        SourceUnavailable: a Drive API call failed.
        SourceEmpty: the folder holds no sub-folders.
    """
    root_id = settings.books_folder_id
    if not root_id:
        raise ConfigurationError("BOOKS_FOLDER_ID is not set")

    folders = await client.list_files(
        query=f"'{root_id}' in parents and mimeType='{FOLDER_MIME}' and trashed=false",
        fields="id, name, modifiedTime",
        order_by="modifiedTime desc",
    )
    if not folders:
        raise SourceEmpty(f"No book folders in {root_id}")
    logger.info("Found %d book folders in Drive", len(folders))

    books = []
    for folder in folders:
        files = await client.list_files(
            query=f"'{folder['id']}' in parents and trashed=false",
            fields="id, name, mimeType, modifiedTime",
        )
        fields = await _read_book_folder(client, settings, folder, files)
        if fields is not None:
            books.append(CandidateRecord(kind=RecordKind.BOOK, fields=fields))

    logger.info("Read %d books from Drive", len(books))
    return books


async def _read_book_folder(
    client: GoogleWorkspaceClient,
    settings: Settings,
    folder: Dict[str, Any],
    files: List[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """Assemble the Book column dict for one folder, or None to skip it."""
    name = folder["name"]
    cover_file = find_cover_image(files)
    excerpt_file = find_document(files, "excerpt")
    chapters_file = find_document(files, "chapters")
    settings_file = find_settings_file(files)

    if not excerpt_file and not chapters_file:
        docs = [f for f in files if _is_document(f)]
        excerpt_file = docs[0] if docs else None
        chapters_file = docs[1] if len(docs) >= 2 else None

    if not excerpt_file and not chapters_file:
        logger.warning("Skipping book folder %s: no excerpt or chapters document", name)
        return None

    excerpt_html = (await _document_html(client, excerpt_file) or "") if excerpt_file else ""
    chapters_html = (await _document_html(client, chapters_file) or "") if chapters_file else ""

    if not excerpt_html and chapters_html:
        excerpt_html = chapters_html[:EXCERPT_FALLBACK_HTML_LIMIT]
    if not chapters_html and excerpt_html:
        chapters_html = excerpt_html
    if not excerpt_html:
        logger.warning("Skipping book folder %s: no content could be extracted", name)
        return None

    book_settings: Dict[str, str] = {}
    if settings_file:
        book_settings = await _read_book_settings(client, settings, settings_file)

    title = (
        book_settings.get("Book name")
        or book_settings.get("book name")
        or book_settings.get("title")
        or name
    )
    pricing = build_pricing_info(book_settings)
    soft_price = pricing["soft_copy"]["price"]

    return {
        "drive_folder_id": folder["id"],
        "drive_folder_name": name,
        "title": title,
        "slug": generate_slug(title) or folder["id"],
        "excerpt": build_excerpt(excerpt_html, EXCERPT_TEXT_LIMIT, ellipsis=False),
        "cover_image": book_cover_url(book_settings, cover_file["id"] if cover_file else None),
        "chapters": chapters_html,
        "drive_files_json": json.dumps({
            "cover_image_id": cover_file["id"] if cover_file else None,
            "excerpt_id": excerpt_file["id"] if excerpt_file else None,
            "chapters_id": chapters_file["id"] if chapters_file else None,
            "settings_id": settings_file["id"] if settings_file else None,
        }),
        "author": book_settings.get("author") or book_settings.get("Author") or "Admin",
        "category": book_settings.get("category") or book_settings.get("Category") or "Book",
        "status": "published",
        "is_paid": soft_price != "Free",
        "price": parse_price(soft_price),
        "currency": parse_currency(soft_price),
        "book_settings_json": json.dumps(book_settings),
        "pricing_info_json": json.dumps(pricing),
    }


async def _read_book_settings(
    client: GoogleWorkspaceClient,
    settings: Settings,
    settings_file: Dict[str, Any],
) -> Dict[str, str]:
    """Read a book's key/value settings sheet. Unreadable sheets yield {}."""
    if settings_file.get("mimeType") != GOOGLE_SHEET_MIME:
        if EXCEL_RE.search(settings_file["name"]):
            logger.info("Skipping Excel settings file %s: only Google Sheets are read", settings_file["name"])
        return {}

    cell_range = a1_range(settings.book_settings_sheet_name, "A:B")
    try:
        rows = await client.get_sheet_values(settings_file["id"], cell_range)
    except SourceUnavailable as exc:
        logger.warning("Could not read book settings %s: %s", settings_file["name"], exc)
        return {}

    pairs = []
    for row in rows:
        key = cell(row, 0)
        if not key or key in ("Field", "field"):
            continue
        pairs.append((key, cell(row, 1)))
    return first_wins(pairs, what="book setting")


# ── File selection ────────────────────────────────────────────────────────────

def _is_temp(file: Dict[str, Any]) -> bool:
    return file["name"].startswith("~$")


def _is_document(file: Dict[str, Any]) -> bool:
    if _is_temp(file):
        return False
    return file.get("mimeType") == GOOGLE_DOC_MIME or bool(WORD_RE.search(file["name"]))


def find_cover_image(files: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return next(
        (f for f in files if IMAGE_RE.search(f["name"]) and not _is_temp(f)),
        None,
    )


def find_document(files: List[Dict[str, Any]], role: str) -> Optional[Dict[str, Any]]:
    """First document whose name contains one of the role's patterns."""
    patterns = DOCUMENT_PATTERNS[role]
    return next(
        (
            f for f in files
            if _is_document(f) and any(p in f["name"].lower() for p in patterns)
        ),
        None,
    )


def find_settings_file(files: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for f in files:
        is_sheet = f.get("mimeType") == GOOGLE_SHEET_MIME or EXCEL_RE.search(f["name"])
        if is_sheet and "setting" in f["name"].lower() and not _is_temp(f):
            return f
    return None


# ── Conversion ────────────────────────────────────────────────────────────────

async def _document_html(client: GoogleWorkspaceClient, file: Dict[str, Any]) -> Optional[str]:
    """
    Return a document's HTML, or None if it cannot be converted.

    Raises:
        SourceUnavailable: the export/download call itself failed.
    """
    if file.get("mimeType") == GOOGLE_DOC_MIME:
        return await client.export_file(file["id"], "text/html")
    if file.get("mimeType") == DOCX_MIME or WORD_RE.search(file["name"]):
        data = await client.download_file(file["id"])
        try:
            return mammoth.convert_to_html(io.BytesIO(data)).value
        except Exception as exc:
            logger.warning("Skipping %s: conversion failed: %s", file["name"], exc)
            return None
    logger.warning("Skipping %s: unsupported type %s", file["name"], file.get("mimeType"))
    return None
