from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./contentsync.db"

    # Service account: either a path to the JSON key or the JSON itself
    google_service_account_file: str = ""
    google_service_account_json: str = ""

    settings_sheet_id: str = ""
    settings_sheet_name: str = "SheetsProjectsSettings"
    settings_sheet_range: str = "A:C"
    products_sheet_id: str = ""
    products_sheet_name: str = "Products"
    products_sheet_range: str = "A:N"
    blogs_folder_id: str = ""
    books_folder_id: str = ""
    book_settings_sheet_name: str = "Sheet1"

    sync_interval_minutes: int = 5
    sync_on_startup: bool = False
    source_timeout_seconds: float = 30.0
    purge_on_empty_source: bool = False  # delete everything when a source reads back empty
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
