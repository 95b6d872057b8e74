from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Mapping

logger = logging.getLogger(__name__)

NODE_STRING_FIELDS = ("id", "name", "url", "date_added", "date_modified")


class ParseError(ValueError):
    """Raised when a bookmark file does not match the expected schema."""


class BookmarkKind(str, Enum):
    FOLDER = "folder"
    LINK = "url"


@dataclass(frozen=True)
class BookmarkNode:
    id: str
    name: str
    kind: BookmarkKind
    url: str = ""
    date_added: str = ""
    date_modified: str = ""
    children: tuple["BookmarkNode", ...] = ()

    @property
    def is_folder(self) -> bool:
        return self.kind is BookmarkKind.FOLDER

    def walk(self) -> Iterator["BookmarkNode"]:
        """Pre-order traversal without recursion, so deep trees are safe."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class BookmarkTree:
    roots: Mapping[str, BookmarkNode] = field(default_factory=dict)

    def count(self) -> tuple[int, int]:
        """Return (folders, links) across all roots, roots excluded."""
        folders = links = 0
        for root in self.roots.values():
            for node in root.walk():
                if node is root:
                    continue
                if node.is_folder:
                    folders += 1
                else:
                    links += 1
        return folders, links


EMPTY_TREE = BookmarkTree()


def _node_from_dict(data: Any, trail: str) -> BookmarkNode:
    if not isinstance(data, dict):
        raise ParseError(f"{trail}: node must be an object.")

    values: dict[str, str] = {}
    for key in NODE_STRING_FIELDS:
        value = data.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ParseError(f"{trail}: field '{key}' must be a string.")
        values[key] = value

    children_raw = data.get("children")
    if children_raw is None:
        children_raw = []
    if not isinstance(children_raw, list):
        raise ParseError(f"{trail}: field 'children' must be a list.")

    node_type = data.get("type")
    if node_type in (None, ""):
        # Untyped nodes: a url makes it a link, anything else is a folder.
        kind = BookmarkKind.LINK if values["url"] else BookmarkKind.FOLDER
    elif node_type == BookmarkKind.FOLDER.value:
        kind = BookmarkKind.FOLDER
    elif node_type == BookmarkKind.LINK.value:
        kind = BookmarkKind.LINK
    else:
        raise ParseError(f"{trail}: unknown node type {node_type!r}.")

    if kind is BookmarkKind.LINK:
        if not values["url"]:
            logger.warning("%s: link %r has no url", trail, values["name"])
        return BookmarkNode(kind=kind, **values)

    children = tuple(
        _node_from_dict(child, f"{trail}/{idx}") for idx, child in enumerate(children_raw)
    )
    values["url"] = ""
    return BookmarkNode(kind=kind, children=children, **values)


def load_tree(raw: bytes) -> BookmarkTree:
    """Parse the raw bytes of a bookmark file into a new tree."""
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(f"Bookmark file is not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise ParseError("Bookmark file is nested too deeply.") from exc
    if not isinstance(data, dict):
        raise ParseError("Bookmark file must contain an object at the top level.")
    roots_raw = data.get("roots")
    if not isinstance(roots_raw, dict):
        raise ParseError("Bookmark file has no 'roots' object.")

    try:
        roots = {
            str(name): _node_from_dict(node, f"roots.{name}")
            for name, node in roots_raw.items()
        }
    except RecursionError as exc:
        raise ParseError("Bookmark file is nested too deeply.") from exc
    return BookmarkTree(roots=roots)


def root_by_name(tree: BookmarkTree, name: str) -> BookmarkNode | None:
    return tree.roots.get(name)


class BookmarkStore:
    """Holds the most recently loaded tree for one bookmark file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._tree: BookmarkTree | None = None
        self.loaded_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def tree(self) -> BookmarkTree | None:
        return self._tree

    @property
    def snapshot(self) -> BookmarkTree:
        return self._tree or EMPTY_TREE

    def root(self, name: str) -> BookmarkNode | None:
        return root_by_name(self.snapshot, name)

    def load(self) -> BookmarkTree:
        """Read and parse the backing file, then replace the current tree.

        OSError and ParseError propagate; the previous tree is kept on failure.
        """
        # Overlapping loads run one at a time so an older read never wins.
        # Readers take the current reference without the lock.
        with self._lock:
            logger.info("Loading bookmarks from %s", self.path)
            try:
                raw = self.path.read_bytes()
                tree = load_tree(raw)
            except (OSError, ParseError) as exc:
                self.last_error = str(exc)
                logger.error(
                    "Failed to load %s: %s (keeping previous tree: %s)",
                    self.path,
                    exc,
                    "yes" if self._tree is not None else "none loaded",
                )
                raise
            self._tree = tree
            self.loaded_at = datetime.now(timezone.utc)
            self.last_error = None
        folders, links = tree.count()
        logger.info(
            "Loaded %d roots, %d folders, %d links from %s",
            len(tree.roots),
            folders,
            links,
            self.path,
        )
        return tree
