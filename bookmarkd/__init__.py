from .bookmarks import (
    BookmarkKind,
    BookmarkNode,
    BookmarkStore,
    BookmarkTree,
    ParseError,
    load_tree,
    root_by_name,
)
from .navigation import Entry, NavigationResolver, NavigationView, resolve, sort_entries
from .settings import ConfigError, Settings, load_settings

__version__ = "0.1.0"
