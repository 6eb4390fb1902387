"""
Async wrapper around the Google Sheets v4 and Drive v3 APIs.

googleapiclient is synchronous; we run every request in the default thread
pool executor so it doesn't block the asyncio event loop, and bound each one
with asyncio.wait_for. A timed-out request is abandoned, not interrupted:
the worker thread finishes in the background and its result is dropped.

httplib2 is not thread-safe, so the services are only used to build
requests; every request executes on its own AuthorizedHttp.

Authentication uses a service account, given either as a key file path
(GOOGLE_SERVICE_ACCOUNT_FILE) or as the inline JSON key
(GOOGLE_SERVICE_ACCOUNT_JSON). Access is read-only.

Every transport, auth, HTTP or timeout failure is re-raised as
SourceUnavailable so callers only deal with the sync error taxonomy.
"""
import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError
from googleapiclient.errors import HttpError

from contentsync.config import Settings, get_settings
from contentsync.sync.errors import ConfigurationError, SourceUnavailable

logger = logging.getLogger(__name__)

SCOPES = (
    "https://www.googleapis.com/auth/spreadsheets.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
)

FOLDER_MIME = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME = "application/vnd.google-apps.document"
GOOGLE_SHEET_MIME = "application/vnd.google-apps.spreadsheet"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_SIMPLE_TITLE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def a1_range(sheet_name: str, cells: str) -> str:
    """Return `Sheet!A:C`, quoting the sheet name when A1 notation requires it."""
    name = (sheet_name or "").strip()
    if not name:
        return cells
    if not _SIMPLE_TITLE_RE.fullmatch(name):
        name = "'" + name.replace("'", "''") + "'"
    return f"{name}!{cells}"


class GoogleWorkspaceClient:
    """
    Thin async wrapper over the googleapiclient Sheets and Drive services.

    connect() is optional: the first data call connects lazily. Missing or
    unreadable credentials raise ConfigurationError.
    """

    def __init__(self, settings: Optional[Settings] = None, timeout: Optional[float] = None):
        """
        Args:
            settings: Settings to read credentials from. Defaults to get_settings().
            timeout: Per-request bound in seconds. Defaults to
                     settings.source_timeout_seconds.
        """
        self._settings = settings or get_settings()
        self._timeout = timeout if timeout is not None else self._settings.source_timeout_seconds
        self._credentials = None
        self._sheets = None
        self._drive = None

    async def connect(self) -> None:
        """Build the Sheets and Drive services from the service account key."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._connect_sync)

    def _connect_sync(self) -> None:
        credentials = self._load_credentials()
        # Discovery documents ship with the library; no network call here
        self._sheets = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        self._drive = build("drive", "v3", credentials=credentials, cache_discovery=False)
        self._credentials = credentials

    def _new_http(self) -> google_auth_httplib2.AuthorizedHttp:
        """A fresh authorized transport for one request on one thread."""
        return google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http())

    def _load_credentials(self):
        inline = self._settings.google_service_account_json
        key_file = self._settings.google_service_account_file
        try:
            if inline:
                info = json.loads(inline)
                return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
            if key_file:
                path = Path(key_file).expanduser()
                if not path.exists():
                    raise ConfigurationError(f"Service account key file not found: {path}")
                return service_account.Credentials.from_service_account_file(str(path), scopes=SCOPES)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid service account key: {exc}") from exc
        raise ConfigurationError(
            "Google credentials are not configured "
            "(set GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_SERVICE_ACCOUNT_JSON)"
        )

    async def _run(self, request: Callable[[Any], Any]) -> Any:
        """
        Execute a blocking googleapiclient request in the thread pool.

        Args:
            request: Called in the worker thread with a fresh AuthorizedHttp;
                     must pass it on as `.execute(http=http)`.
        """
        if self._sheets is None or self._drive is None:
            await self.connect()
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, lambda: request(self._new_http())),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(f"Google API request timed out after {self._timeout}s") from exc
        except HttpError as exc:
            status = getattr(exc.resp, "status", "?")
            raise SourceUnavailable(f"Google API error {status}: {exc.reason}") from exc
        except (GoogleApiClientError, httplib2.HttpLib2Error, GoogleAuthError, OSError) as exc:
            raise SourceUnavailable(f"Google API error: {exc}") from exc

    # ─── Sheets ───────────────────────────────────────────────────────────────

    async def get_sheet_values(self, spreadsheet_id: str, cell_range: str) -> List[List[Any]]:
        """Fetch the values of an A1 range. Returns [] for an empty range."""
        response = await self._run(
            lambda http: self._sheets.spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=cell_range)
            .execute(http=http)
        )
        return response.get("values", []) or []

    # ─── Drive ────────────────────────────────────────────────────────────────

    async def list_files(
        self,
        query: str,
        fields: str = "id, name, mimeType, modifiedTime",
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List every file matching a Drive query, following nextPageToken."""
        files: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = {
                "q": query,
                "fields": f"nextPageToken, files({fields})",
                "pageSize": 1000,
            }
            if order_by:
                kwargs["orderBy"] = order_by
            if page_token:
                kwargs["pageToken"] = page_token
            response = await self._run(
                lambda http, kwargs=kwargs: self._drive.files().list(**kwargs).execute(http=http)
            )
            files.extend(response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return files

    async def export_file(self, file_id: str, mime_type: str = "text/html") -> str:
        """Export a Google-native document (e.g. a Doc as HTML)."""
        data = await self._run(
            lambda http: self._drive.files().export(fileId=file_id, mimeType=mime_type).execute(http=http)
        )
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data or ""

    async def download_file(self, file_id: str) -> bytes:
        """Download the raw bytes of a stored (non-Google-native) file."""
        return await self._run(
            lambda http: self._drive.files().get_media(fileId=file_id).execute(http=http)
        )
