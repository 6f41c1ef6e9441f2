"""Landing page content loader."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pmdev.config import settings
from pmdev.schemas.site import SiteContent
from pmdev.utils.yaml_loader import load_yaml_mapping


def site_content_path() -> Path:
    return Path(settings.data_dir) / settings.site_content_file


@lru_cache(maxsize=4)
def _load(path: Path) -> SiteContent:
    return SiteContent.model_validate(load_yaml_mapping(path))


def load_site_content(path: Path | None = None) -> SiteContent:
    """Parse and cache site.yaml; raises if it is missing or invalid."""
    return _load((path or site_content_path()).resolve())


def clear_site_content_cache() -> None:
    _load.cache_clear()
