# Overview: Binary asset storage (QR code images) behind a small store/delete contract.

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Iterable

from flask import current_app


class AssetStoreError(Exception):
    """Raised when an asset cannot be written or removed."""
    pass


class AssetStore:
    def store(self, data: bytes, suffix: str = ".png") -> str:
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError


class LocalAssetStore(AssetStore):
    """
    Filesystem-backed store.

    Files land in root_dir under random names; the returned URL is
    base_url + "/" + filename.
    """

    def __init__(self, root_dir: str | Path, base_url: str):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, url: str) -> Path:
        prefix = self.base_url + "/"
        if not url.startswith(prefix):
            raise AssetStoreError(f"Asset {url} is not managed by this store")
        name = url[len(prefix):]
        if not name or "/" in name or name.startswith("."):
            raise AssetStoreError(f"Invalid asset name in {url}")
        return self.root_dir / name

    def store(self, data: bytes, suffix: str = ".png") -> str:
        name = f"{uuid.uuid4().hex}{suffix}"
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            (self.root_dir / name).write_bytes(data)
        except OSError as exc:
            raise AssetStoreError(f"Could not store asset: {exc}") from exc
        return f"{self.base_url}/{name}"

    def delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise AssetStoreError(f"Asset {url} does not exist") from exc
        except OSError as exc:
            raise AssetStoreError(f"Could not delete asset {url}: {exc}") from exc


def discard_assets(asset_store: AssetStore | None, urls: Iterable[str | None]) -> None:
    """
    Delete assets after a committed change.

    The change is already committed, so failures are logged, not raised.
    """
    if asset_store is None:
        return
    for url in urls:
        if not url:
            continue
        try:
            asset_store.delete(url)
        except AssetStoreError as exc:
            current_app.logger.warning("Failed to delete asset %s: %s", url, exc)
        except Exception:
            current_app.logger.exception("Unexpected error deleting asset %s", url)
