"""
Google Sheets / Drive response normalizer.

Converts raw sheet rows and Drive documents into clean field dicts that map
directly onto the content model columns. No DB or network access here:
readers fetch, these functions shape, the store persists.

Sheet rows arrive as lists of strings, ragged on the right (the Sheets API
drops trailing empty cells), so every row accessor tolerates short rows.

Duplicate keys (repeated header names, repeated setting fields, repeated
book-setting fields) always resolve the same way: the first occurrence is
kept and later ones are dropped with a debug log line. See first_wins().
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────────

PRODUCT_TYPES = ("Physical", "Soft", "Physical + Soft")

# Column order of the products sheet when the header row is not recognised
PRODUCT_POSITIONAL_COLUMNS = (
    "title",
    "summary",
    "product_type",
    "price_inr",
    "price_usd",
    "iframe",
    "image_url",
    "driver_gif_path",
    "drive_path",
    "blog_order",
    "status",
    "demo_link",
    "solution_link",
)

# Normalised header text -> model column
PRODUCT_HEADER_ALIASES = {
    "id": "sheets_id",
    "productid": "sheets_id",
    "sheetsid": "sheets_id",
    "title": "title",
    "name": "title",
    "productname": "title",
    "summary": "summary",
    "description": "summary",
    "producttype": "product_type",
    "type": "product_type",
    "priceinr": "price_inr",
    "inr": "price_inr",
    "priceusd": "price_usd",
    "usd": "price_usd",
    "iframe": "iframe",
    "imageurl": "image_url",
    "image": "image_url",
    "drivergifpath": "driver_gif_path",
    "gifpath": "driver_gif_path",
    "drivepath": "drive_path",
    "blogorder": "blog_order",
    "status": "status",
    "demolink": "demo_link",
    "solutionlink": "solution_link",
}

_TRUE_WORDS = {"checked", "yes", "1"}
_FALSE_WORDS = {"unchecked", "no", "0", ""}

_IMG_RE = re.compile(r"<img[^>]*src=\"([^\"]*)\"[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_CSS_IMPORT_RE = re.compile(r"@import[^;]*;", re.IGNORECASE)
_CSS_URL_RE = re.compile(r"url\([^)]*\)", re.IGNORECASE)
_CSS_AT_RULE_RE = re.compile(r"@[a-z-]+[^;]*;", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")
_DRIVE_URL_RES = (
    re.compile(r"https://drive\.google\.com/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"https://drive\.google\.com/open\?id=([a-zA-Z0-9_-]+)"),
)

DEFAULT_BOOK_COVER = "/default-book-cover.jpg"


# ── Generic helpers ───────────────────────────────────────────────────────────

def first_wins(pairs: Iterable[Tuple[str, Any]], what: str = "key") -> Dict[str, Any]:
    """Build a dict from (key, value) pairs, keeping the first value per key.

    Later duplicates are dropped and logged at debug level.
    """
    out: Dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            logger.debug(
                "Dropping duplicate %s %r (keeping %r, dropping %r)",
                what, key, out[key], value,
            )
            continue
        out[key] = value
    return out


def cell(row: Sequence[Any], index: int) -> str:
    """Return row[index] as a stripped string, '' past the end of a short row."""
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def generate_slug(title: str) -> str:
    """URL slug: lowercase, alphanumerics and single hyphens only."""
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def strip_html(html: str) -> str:
    """Plain text of an HTML fragment, with inline CSS noise removed."""
    text = _TAG_RE.sub(" ", html)
    text = _CSS_IMPORT_RE.sub("", text)
    text = _CSS_URL_RE.sub("", text)
    text = _CSS_AT_RULE_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def build_excerpt(html: str, limit: int, ellipsis: bool = True) -> str:
    """First `limit` characters of the text content, '...' appended if cut."""
    text = strip_html(html)
    if len(text) <= limit:
        return text
    return text[:limit] + ("..." if ellipsis else "")


def extract_images(html: str) -> List[Dict[str, Any]]:
    """Return [{url, caption, position}] for every <img src> in document order."""
    images = []
    for position, match in enumerate(_IMG_RE.finditer(html)):
        url = match.group(1)
        if "googleusercontent.com" in url and "docsz/" in url:
            url = url.replace("&amp;", "&")
        images.append({"url": url, "caption": "", "position": position})
    return images


# ── Settings sheet ────────────────────────────────────────────────────────────

def coerce_checkbox(value: Any) -> Any:
    """Map checkbox-style cell values onto booleans; pass anything else through.

    TRUE/true/checked/yes/1 -> True; FALSE/false/unchecked/no/0/blank -> False.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if value in ("TRUE", "true"):
        return True
    if value in ("FALSE", "false"):
        return False
    if isinstance(value, str):
        lowered = value.lower().strip()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return value


def normalize_setting_row(row: Sequence[Any], source_sheet: str) -> Optional[Dict[str, Any]]:
    """Normalize a `Field | Value | Link` row. Returns None for blank or header rows."""
    name = cell(row, 0)
    if not name or name == "Field":
        return None
    raw_value = row[1] if len(row) > 1 else None
    return {
        "field": name,
        "value": coerce_checkbox(raw_value),
        "link": cell(row, 2),
        "source_sheet": source_sheet,
    }


# ── Products sheet ────────────────────────────────────────────────────────────

def _header_key(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def map_product_header(header: Sequence[Any]) -> Dict[str, int]:
    """
    Map model columns to sheet column indexes from the header row.

    Repeated headers keep their first column. Falls back to the positional
    A..M layout when no header cell is recognised.

    Returns:
        Dict of model column -> 0-based sheet column index.
    """
    pairs = []
    for index, text in enumerate(header):
        column = PRODUCT_HEADER_ALIASES.get(_header_key(str(text or "")))
        if column:
            pairs.append((column, index))
    mapping = first_wins(pairs, what="product header")
    if not mapping:
        logger.info("Products header not recognised; using positional columns")
        return {name: i for i, name in enumerate(PRODUCT_POSITIONAL_COLUMNS)}
    return mapping


def _product_type(raw: str) -> str:
    if not raw:
        return "Soft"
    for known in PRODUCT_TYPES:
        if raw.lower() == known.lower():
            return known
    logger.warning("Unknown product type %r; defaulting to Soft", raw)
    return "Soft"


def normalize_product_row(
    row: Sequence[Any],
    columns: Dict[str, int],
    data_index: int,
) -> Optional[Dict[str, Any]]:
    """
    Normalize one products data row into Product column dict.

    Args:
        row: Raw row values (may be short).
        columns: Output of map_product_header().
        data_index: 0-based index among data rows (header excluded).

    Returns:
        Field dict, or None when the row is blank or has no title.
    """
    if not any(str(v).strip() for v in row if v is not None):
        return None

    def get(name: str) -> str:
        index = columns.get(name)
        return cell(row, index) if index is not None else ""

    title = get("title")
    if not title:
        logger.warning("Skipping products row %d: no title", data_index + 2)
        return None

    return {
        "sheets_id": get("sheets_id") or str(data_index + 1),
        "title": title,
        "summary": get("summary"),
        "product_type": _product_type(get("product_type")),
        "price_inr": get("price_inr"),
        "price_usd": get("price_usd"),
        "iframe": get("iframe"),
        "image_url": get("image_url"),
        "driver_gif_path": get("driver_gif_path"),
        "drive_path": get("drive_path"),
        "blog_order": get("blog_order"),
        "status": get("status") or "Active",
        "demo_link": get("demo_link"),
        "solution_link": get("solution_link"),
        "sheets_row_number": data_index + 2,  # header row + 1-based rows
    }


# ── Books ─────────────────────────────────────────────────────────────────────

def _is_null(value: Any) -> bool:
    return value is None or str(value).strip() in ("", "NULL", "null")


def parse_price(price: Any) -> float:
    """Numeric part of "USD 20", "$20", "20". NULL/blank -> 0."""
    if _is_null(price):
        return 0.0
    match = re.search(r"[\d.]+", str(price))
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def parse_currency(price: Any) -> str:
    if _is_null(price):
        return "USD"
    text = str(price).upper()
    for code in ("USD", "EUR", "GBP", "INR"):
        if code in text:
            return code
    return "USD"


def build_pricing_info(book_settings: Dict[str, str]) -> Dict[str, Any]:
    """Derive soft/hard copy pricing and display strings from the book settings sheet."""
    hard_available_raw = book_settings.get("hard copy available") or book_settings.get("hard copy avail")
    soft_price = book_settings.get("soft copy price")
    hard_price = book_settings.get("hard copy price")

    hard_available = str(hard_available_raw or "").strip().lower() == "yes"

    if not _is_null(soft_price):
        soft_display = soft_price
    elif soft_price in ("NULL", "null"):
        soft_display = "Soft Copy Price - NULL"
    else:
        soft_display = "Soft Copy - Free"

    if hard_available:
        availability = "Hard Copy Available"
        hard_display = hard_price if not _is_null(hard_price) else "Hard Copy Price - NULL"
    else:
        availability = "Hard Copy Not Available"
        hard_display = "Hard Copy Not Available"

    return {
        "soft_copy": {
            "available": True,
            "price": soft_price if not _is_null(soft_price) else "Free",
            "display_text": soft_display,
            "raw_value": soft_price,
        },
        "hard_copy": {
            "available": hard_available,
            "price": hard_price if not _is_null(hard_price) else None,
            "display_text": hard_display,
            "availability_text": availability,
            "raw_value": hard_price,
        },
        "raw_fields": {
            "Book name": book_settings.get("Book name"),
            "language": book_settings.get("language"),
            "release date": book_settings.get("release date"),
            "hard copy available": hard_available_raw,
            "soft copy price": soft_price,
            "hard copy price": hard_price,
            "Image": book_settings.get("Image"),
        },
    }


def convert_drive_url(url: str) -> str:
    """Turn a Drive sharing link into a directly embeddable image URL.

    Non-Drive URLs and links already in uc?export=view form pass through.
    """
    if not url or "drive.google.com/uc?export=view" in url:
        return url
    for pattern in _DRIVE_URL_RES:
        match = pattern.search(url)
        if match:
            return f"https://lh3.googleusercontent.com/d/{match.group(1)}=w1000?authuser=0"
    return url


def drive_thumbnail_url(file_id: str) -> str:
    return f"https://drive.google.com/thumbnail?id={file_id}&sz=w400"


def book_cover_url(book_settings: Dict[str, str], cover_file_id: Optional[str]) -> str:
    """Sheet `Image` wins, then the folder's image file, then the placeholder."""
    image = book_settings.get("Image")
    if not _is_null(image):
        return convert_drive_url(str(image))
    if cover_file_id:
        return drive_thumbnail_url(cover_file_id)
    return DEFAULT_BOOK_COVER
