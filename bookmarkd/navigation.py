from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .bookmarks import BookmarkKind, BookmarkNode

HOME_LABEL = "[BOOKMARKS]"
CRUMB_SEPARATOR = " > "


@dataclass(frozen=True)
class Entry:
    name: str
    kind: BookmarkKind
    target: tuple[str, ...] | str  # selector path for folders, url for links

    @property
    def is_folder(self) -> bool:
        return self.kind is BookmarkKind.FOLDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind.value,
            "target": list(self.target) if self.is_folder else self.target,
        }


@dataclass(frozen=True)
class NavigationView:
    crumbs: tuple[str, ...]
    entries: tuple[Entry, ...]
    home_label: str = HOME_LABEL

    @property
    def breadcrumb(self) -> str:
        return self.home_label + "".join(CRUMB_SEPARATOR + crumb for crumb in self.crumbs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "breadcrumb": self.breadcrumb,
            "crumbs": list(self.crumbs),
            "entries": [e.to_dict() for e in self.entries],
        }


def sort_entries(nodes: Iterable[BookmarkNode]) -> list[BookmarkNode]:
    """Order by name using plain code-point comparison; ties keep stored order."""
    return sorted(nodes, key=lambda node: node.name)


def _find_child(folder: BookmarkNode, name: str) -> BookmarkNode | None:
    for child in folder.children:
        if child.name == name:
            return child
    return None


def resolve(
    root: BookmarkNode | None,
    selectors: Sequence[str],
    sort_enabled: bool = False,
    home_label: str = HOME_LABEL,
) -> NavigationView:
    """Walk `selectors` down from `root` and describe the level reached.

    The walk stops at the first selector that names no child of the current
    folder, or as soon as it lands on a link. Unconsumed selectors are dropped
    from both the breadcrumb and the folder targets, so a stale path renders
    exactly like its deepest resolvable prefix.
    """
    if root is None:
        return NavigationView(crumbs=(), entries=(), home_label=home_label)

    current = root
    consumed: list[str] = []
    for selector in selectors:
        if not current.is_folder:
            break
        child = _find_child(current, selector)
        if child is None:
            break
        consumed.append(selector)
        current = child

    children: Iterable[BookmarkNode] = current.children if current.is_folder else ()
    if sort_enabled:
        children = sort_entries(children)

    path = tuple(consumed)
    entries = tuple(
        Entry(name=node.name, kind=node.kind, target=path + (node.name,))
        if node.is_folder
        else Entry(name=node.name, kind=node.kind, target=node.url)
        for node in children
    )
    return NavigationView(crumbs=path, entries=entries, home_label=home_label)


class NavigationResolver:
    """Resolver bound to the process-wide sort flag and home label."""

    def __init__(self, sort_enabled: bool = False, home_label: str = HOME_LABEL) -> None:
        self.sort_enabled = sort_enabled
        self.home_label = home_label

    def resolve(self, root: BookmarkNode | None, selectors: Sequence[str]) -> NavigationView:
        return resolve(root, selectors, sort_enabled=self.sort_enabled, home_label=self.home_label)
