import json
import logging
from pathlib import Path

import pytest

from bookmarkd.app import create_app
from bookmarkd.bookmarks import BookmarkStore
from bookmarkd.log import LOGGER_NAME
from bookmarkd.settings import Settings

from bookmark_factories import bookmarks_document, folder, link


@pytest.fixture()
def example_document() -> dict:
    """bookmark_bar -> [Work -> [Mail], Home]."""
    return bookmarks_document(
        bookmark_bar=folder("Bookmarks bar", [
            folder("Work", [link("Mail", "https://mail.example", "3")], "2"),
            link("Home", "https://home.example", "4"),
        ], "1"),
        other=folder("Other bookmarks", [], "5"),
    )


@pytest.fixture()
def deep_document() -> dict:
    return bookmarks_document(
        bookmark_bar=folder("Bookmarks bar", [
            folder("Dev", [
                folder("python", [
                    link("docs", "https://docs.python.org"),
                    link("PyPI", "https://pypi.org"),
                ]),
                link("Zeal", "https://zealdocs.org"),
                folder("Rust", [link("book", "https://doc.rust-lang.org/book/")]),
                link("alpha", "https://alpha.example"),
            ]),
            link("News", "https://news.example"),
            folder("Dev", [link("shadowed", "https://shadowed.example")]),
        ]),
    )


@pytest.fixture()
def bookmark_file(tmp_path: Path, example_document) -> Path:
    path = tmp_path / "Bookmarks"
    path.write_text(json.dumps(example_document), encoding="utf-8")
    return path


@pytest.fixture()
def store(bookmark_file: Path) -> BookmarkStore:
    s = BookmarkStore(bookmark_file)
    s.load()
    return s


@pytest.fixture()
def settings(bookmark_file: Path, tmp_path: Path) -> Settings:
    return Settings(bookmark_file=bookmark_file, log_file=tmp_path / "bookmarkd.log")


@pytest.fixture()
def client(settings: Settings, store: BookmarkStore):
    app = create_app(settings, store)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
