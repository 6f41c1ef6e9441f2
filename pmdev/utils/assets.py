from __future__ import annotations

from functools import lru_cache
from hashlib import sha256

from pmdev.constants import STATIC_DIR

STATIC_ROOT = STATIC_DIR


@lru_cache(maxsize=64)
def asset_url(relative_path: str) -> str:
    """Static URL with a short content hash so long cache lifetimes are safe."""
    file_path = STATIC_ROOT / relative_path
    if not file_path.is_file():
        return f"/static/{relative_path}"
    digest = sha256(file_path.read_bytes()).hexdigest()[:12]
    return f"/static/{relative_path}?v={digest}"
