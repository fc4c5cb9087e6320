"""Utility helpers for reading the dosing datasets."""

from __future__ import annotations

import json
import logging
import math
import os
from collections.abc import Callable, Mapping
from functools import cache, lru_cache
from os import PathLike
from pathlib import Path
from typing import Any, TextIO, TypeVar, Union

import yaml

from .exceptions import ValidationError

__all__ = [
    "load_data",
    "load_dataset",
    "clear_dataset_cache",
    "cached_table",
    "dataset_paths",
    "get_data_dir",
    "get_extra_dirs",
    "overlay_dir",
    "normalize_key",
    "deep_update",
    "require_positive",
]

_LOGGER = logging.getLogger(__name__)

PathType = Union[str, PathLike]


def _open_text(path: Path) -> TextIO:
    return open(path, encoding="utf-8")


def load_data(path: PathType) -> Any:
    """Return the parsed contents of ``path`` supporting JSON or YAML.

    A :class:`FileNotFoundError` is raised if the file does not exist and a
    :class:`ValueError` is raised when the contents cannot be decoded. The
    error message always includes the file path to aid debugging.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    try:
        with _open_text(p) as f:
            if p.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f) or {}
            return json.load(f)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {p}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {p}: {exc}") from exc


def deep_update(base: dict[str, Any], other: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``other`` into ``base`` and return ``base``."""

    for key, value in other.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, Mapping):
            deep_update(base[key], value)
        else:
            base[key] = value
    return base


# Default data directory is the repository ``data`` folder. It can be
# overridden using ``AQUADOSE_DATA_DIR``. Additional directories listed in
# ``AQUADOSE_EXTRA_DATA_DIRS`` (``os.pathsep``-separated) are merged in order
# after the default directory, and ``AQUADOSE_OVERLAY_DIR`` is merged last so
# users can replace individual table entries without copying whole files.
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DATA_ENV = "AQUADOSE_DATA_DIR"
EXTRA_ENV = "AQUADOSE_EXTRA_DATA_DIRS"
OVERLAY_ENV = "AQUADOSE_OVERLAY_DIR"

# Cached dataset search path info
_PATH_CACHE: tuple[Path, ...] | None = None
_ENV_STATE: tuple[str | None, str | None] | None = None


def get_data_dir() -> Path:
    """Return base dataset directory honoring the ``AQUADOSE_DATA_DIR`` env."""

    env = os.getenv(DATA_ENV)
    return Path(env).expanduser() if env else DEFAULT_DATA_DIR


def get_extra_dirs() -> tuple[Path, ...]:
    """Return additional dataset directories from ``AQUADOSE_EXTRA_DATA_DIRS``."""

    env = os.getenv(EXTRA_ENV)
    if not env:
        return ()
    dirs: list[Path] = []
    for part in env.split(os.pathsep):
        path = Path(part).expanduser()
        if path.is_dir():
            dirs.append(path)
    return tuple(dirs)


def overlay_dir() -> Path | None:
    """Return the overlay directory defined via ``AQUADOSE_OVERLAY_DIR``."""

    env = os.getenv(OVERLAY_ENV)
    return Path(env).expanduser() if env else None


def dataset_paths() -> tuple[Path, ...]:
    """Return directories searched when loading datasets.

    Results are cached but refreshed automatically when the relevant
    environment variables change.
    """

    global _PATH_CACHE, _ENV_STATE
    env_state = (os.getenv(DATA_ENV), os.getenv(EXTRA_ENV))
    if _PATH_CACHE is None or _ENV_STATE != env_state:
        _PATH_CACHE = (get_data_dir(), *get_extra_dirs())
        _ENV_STATE = env_state
    return _PATH_CACHE


@cache
def load_dataset(filename: str) -> dict[str, Any]:
    """Return dataset ``filename`` merged with any extra and overlay data.

    Missing files produce an empty mapping so callers can fall back to
    built-in defaults.
    """

    data: dict[str, Any] = {}
    paths = list(dataset_paths())
    overlay = overlay_dir()
    if overlay:
        paths.append(overlay)

    found = False
    for base in paths:
        path = base / filename
        if not path.exists():
            continue
        found = True
        extra = load_data(path)
        if isinstance(extra, dict) and isinstance(data, dict):
            deep_update(data, extra)
        else:
            data = extra
        _LOGGER.debug("Loaded dataset %s from %s", filename, path)

    if not found:
        _LOGGER.warning("Dataset %s not found in %s", filename, paths)
    return data


_T = TypeVar("_T")

# Parsed tables built from datasets, reset with the raw dataset cache
_TABLE_CACHES: list[Any] = []


def cached_table(func: Callable[[], _T]) -> Callable[[], _T]:
    """Cache the table built by ``func`` until :func:`clear_dataset_cache`."""

    cached = lru_cache(maxsize=1)(func)
    _TABLE_CACHES.append(cached)
    return cached


def clear_dataset_cache() -> None:
    """Clear cached datasets and every table registered with :func:`cached_table`."""

    global _PATH_CACHE, _ENV_STATE
    load_dataset.cache_clear()
    for table in _TABLE_CACHES:
        table.cache_clear()
    _PATH_CACHE = None
    _ENV_STATE = None


def normalize_key(key: str) -> str:
    """Return ``key`` normalized for case-insensitive dataset lookups.

    Whitespace, hyphens and underscores collapse to a single underscore.
    """

    value = str(key).casefold()
    for sep in ("_", "-"):
        value = value.replace(sep, " ")
    parts = [p for p in value.strip().split() if p]
    return "_".join(parts)


def require_positive(name: str, value: Any, *, allow_zero: bool = False) -> float:
    """Return ``value`` as a float or raise :class:`ValidationError`.

    Non-numeric and non-finite values are rejected. Zero is accepted only
    when ``allow_zero`` is set.
    """

    try:
        num = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a number") from exc
    if not math.isfinite(num):
        raise ValidationError(f"{name} must be finite")
    if num < 0 or (num == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"{name} must be {qualifier}")
    return num
