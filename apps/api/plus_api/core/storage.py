"""
Local filesystem asset storage.

Defaults:
- STORAGE_ROOT: ./data/storage
- ASSET_BASE_URL: /assets

Asset paths stored on cosmetics are relative to STORAGE_ROOT and are served
under ASSET_BASE_URL by whatever fronts the API.
"""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_asset_base_url, get_storage_root_setting


def _repo_root() -> Path:
    # apps/api/plus_api/core/storage.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def get_storage_root() -> Path:
    p = Path(get_storage_root_setting())
    return (_repo_root() / p).resolve() if not p.is_absolute() else p


def ensure_storage_root() -> Path:
    root = get_storage_root()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _safe_under_root(root: Path, candidate: str) -> Optional[Path]:
    p = (root / candidate).resolve()
    root_resolved = root.resolve()
    if p == root_resolved or root_resolved in p.parents:
        return p
    return None


def asset_url(path: str) -> str:
    return f"{get_asset_base_url()}/{path.lstrip('/')}"


def asset_etag(path: str) -> Optional[str]:
    """MD5 of the stored bytes (object-store ETag equivalent), None when absent."""
    p = _safe_under_root(get_storage_root(), path)
    if p is None or not p.is_file():
        return None
    digest = hashlib.md5()
    with p.open("rb") as fh:
        for chunk in iter(lambda: fh.read(64 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def storage_health() -> Dict[str, Any]:
    try:
        root = ensure_storage_root()
        probe = root / ".probe_write"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return {"status": "ok", "kind": "local_fs", "root": str(root.as_posix())}
    except OSError as e:
        return {"status": "error", "kind": "local_fs", "root": str(get_storage_root().as_posix()), "error": str(e)}
