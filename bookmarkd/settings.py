from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

yaml = YAML()

CONFIG_FILENAME = "bookmarkd.yml"
ENV_PREFIX = "BOOKMARKD_"
PORT_RANGE = (1025, 49151)
FALSE_WORDS = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Raised for settings the server cannot start with."""


def _default_bookmark_file() -> Path:
    return Path.home() / ".config" / "chromium" / "Default" / "Bookmarks"


@dataclass(frozen=True)
class Settings:
    bookmark_file: Path = field(default_factory=_default_bookmark_file)
    log_file: Path = Path("bookmarkd.log")
    host: str = "127.0.0.1"
    port: int = 9898
    use_sort: bool = False
    root_name: str = "bookmark_bar"
    home_label: str = "[BOOKMARKS]"
    reload_on_root: bool = False
    reload_interval: float = 0.0
    debug: bool = False

    def validate(self) -> "Settings":
        low, high = PORT_RANGE
        if not low <= self.port <= high:
            raise ConfigError(f"Port out of range [{low}, {high}]: {self.port}")
        if self.reload_interval < 0:
            raise ConfigError("reload_interval must not be negative.")
        if not self.bookmark_file.is_file():
            raise ConfigError(f"Bookmark file not found: {self.bookmark_file}")
        return self

    def merged(self, overrides: Mapping[str, Any]) -> "Settings":
        """Return a copy with `overrides` coerced onto the matching fields."""
        known = {f.name: f for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                raise ConfigError(f"Unknown setting: {key}")
            changes[key] = _coerce(key, getattr(self, key), value)
        return replace(self, **changes)


def _coerce(key: str, current: Any, value: Any) -> Any:
    try:
        if isinstance(current, bool):
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() not in FALSE_WORDS
        if isinstance(current, Path):
            return Path(os.path.expanduser(str(value)))
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from exc
    return str(value)


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle) or CommentedMap()
    except Exception as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not isinstance(data, CommentedMap):
        raise ConfigError(f"{path.name} must contain a mapping at the top level.")
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def _config_path(explicit: str | None) -> Path:
    if explicit:
        candidate = Path(explicit)
        return candidate if candidate.is_absolute() else Path.cwd() / candidate
    return Path.cwd() / CONFIG_FILENAME


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for f in fields(Settings):
        value = environ.get(ENV_PREFIX + f.name.upper())
        if value is not None:
            overrides[f.name] = value
    return overrides


def load_settings(
    cli: Mapping[str, Any] | None = None,
    config_file: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Layer defaults, the YAML config file, BOOKMARKD_* variables and CLI flags."""
    env = os.environ if environ is None else environ
    if config_file is None:
        config_file = env.get(f"{ENV_PREFIX}CONFIG")
    settings = Settings()
    settings = settings.merged(load_config_file(_config_path(config_file)))
    settings = settings.merged(_env_overrides(env))
    return settings.merged(cli or {})
