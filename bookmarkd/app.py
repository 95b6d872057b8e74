from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from flask import Blueprint, Flask, current_app, jsonify, render_template, request

from .bookmarks import BookmarkStore, ParseError
from .navigation import NavigationResolver, NavigationView
from .settings import Settings

BASE_DIR = Path(__file__).resolve().parent
SELECTOR_PARAM = "fp"
LINK_SCHEMES = {"http", "https", "ftp", "file"}

logger = logging.getLogger(__name__)

bp = Blueprint("bookmarkd", __name__)


def _json_error(message: str, status: int = 400, **extra: Any):
    payload: dict[str, Any] = {"error": message}
    payload.update(extra)
    return jsonify(payload), status


def _store() -> BookmarkStore:
    return current_app.extensions["bookmarkd.store"]


def _resolver() -> NavigationResolver:
    return current_app.extensions["bookmarkd.resolver"]


def _settings() -> Settings:
    return current_app.extensions["bookmarkd.settings"]


def _try_reload(store: BookmarkStore) -> str | None:
    """Reload the store, returning the error text instead of raising."""
    try:
        store.load()
    except (OSError, ParseError) as exc:
        return str(exc)
    return None


@bp.app_template_filter("link_href")
def _link_href(url: str) -> str | None:
    """Return `url` when its scheme is safe to link, else None."""
    try:
        scheme = urlparse(url).scheme.lower()
    except ValueError:
        return None
    return url if scheme in LINK_SCHEMES else None


def _current_view() -> tuple[NavigationView, str | None]:
    selectors = request.args.getlist(SELECTOR_PARAM)
    store = _store()
    load_error = None
    if not selectors and _settings().reload_on_root:
        load_error = _try_reload(store)
    view = _resolver().resolve(store.root(_settings().root_name), selectors)
    return view, load_error


@bp.route("/", methods=["GET"])
def index():
    view, load_error = _current_view()
    status = 200 if _store().tree is not None else 503
    return render_template("index.html", view=view, load_error=load_error), status


@bp.route("/api/view", methods=["GET"])
def api_view():
    view, load_error = _current_view()
    if _store().tree is None:
        return _json_error(load_error or "Bookmarks have not been loaded.", 503)
    payload = view.to_dict()
    if load_error:
        payload["warning"] = f"Reload failed, showing previous bookmarks: {load_error}"
    return jsonify(payload)


@bp.route("/api/reload", methods=["POST"])
def api_reload():
    store = _store()
    error = _try_reload(store)
    if error:
        return _json_error(
            f"Failed to reload bookmarks: {error}",
            500 if store.tree is not None else 503,
            retained=store.tree is not None,
        )
    folders, links = store.snapshot.count()
    return jsonify({
        "status": "ok",
        "roots": sorted(store.snapshot.roots),
        "folders": folders,
        "links": links,
    })


@bp.route("/health", methods=["GET"])
def healthcheck():
    store = _store()
    return jsonify({
        "status": "ok" if store.tree is not None else "degraded",
        "bookmark_file": str(store.path),
        "exists": store.path.exists(),
        "loaded": store.tree is not None,
        "loaded_at": store.loaded_at.isoformat() if store.loaded_at else None,
        "last_error": store.last_error,
    })


def create_app(settings: Settings, store: BookmarkStore | None = None) -> Flask:
    app = Flask(
        __name__,
        template_folder=str(BASE_DIR / "templates"),
        static_folder=str(BASE_DIR / "static"),
    )
    app.extensions["bookmarkd.settings"] = settings
    app.extensions["bookmarkd.store"] = store or BookmarkStore(settings.bookmark_file)
    app.extensions["bookmarkd.resolver"] = NavigationResolver(
        sort_enabled=settings.use_sort,
        home_label=settings.home_label,
    )

    app.register_blueprint(bp)
    return app


def start_reload_thread(store: BookmarkStore, interval: float) -> threading.Event:
    """Reload `store` every `interval` seconds until the returned event is set."""
    stop = threading.Event()

    def _run() -> None:
        while not stop.wait(interval):
            _try_reload(store)

    thread = threading.Thread(target=_run, name="bookmarkd-reload", daemon=True)
    thread.start()
    logger.info("Reloading %s every %.0f seconds", store.path, interval)
    return stop
