"""Shared test fixtures."""
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from contentsync.models.content import Blog, Book, Product, SiteSetting  # noqa: F401
from contentsync.models.sync import SyncLog  # noqa: F401
from contentsync.config import Settings


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    """Settings with every source locator filled and no .env lookup."""
    return Settings(
        _env_file=None,
        google_service_account_file="",
        google_service_account_json="",
        settings_sheet_id="settings-sheet",
        products_sheet_id="products-sheet",
        blogs_folder_id="blogs-folder",
        books_folder_id="books-folder",
    )
