"""
Download cache for remote audio assets.

pygame can only open local files, so assets served from the CDN are
downloaded into a cache directory first. The directory is trimmed
oldest-first once it grows past its size limit.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from audiovr.core.errors import PlaybackError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

CHUNK_SIZE = 64 * 1024
# After trimming, the cache is brought down to this share of its limit
TRIM_TARGET = 0.8


class AssetDownloader:
    """
    Fetches remote assets into a local cache directory.

    Usage:
        downloader = AssetDownloader("audio-cache", max_cache_bytes=500 * 1024 * 1024)
        path = downloader.fetch("ui-click", "https://audio-cdn.audiovr.app/ui/click.mp3")
    """

    def __init__(
        self,
        cache_dir: Path | str,
        max_cache_bytes: int = 500 * 1024 * 1024,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        offline: bool = False,
    ):
        self.cache_dir = Path(cache_dir)
        self.max_cache_bytes = max_cache_bytes
        self.timeout = timeout
        self.offline = offline
        self._session = session or requests.Session()
        self._in_flight: set[str] = set()

    def cached_path(self, asset_id: str, url: str) -> Path:
        """Where the asset is (or would be) stored locally."""
        return self.cache_dir / f"{asset_id}.{self._extension(url)}"

    def is_cached(self, asset_id: str, url: str) -> bool:
        return self.cached_path(asset_id, url).exists()

    def fetch(
        self,
        asset_id: str,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        Return a local path for url, downloading it if needed.

        Raises:
            PlaybackError: offline with no cached copy, download already
                running for this asset, or any HTTP/IO failure
        """
        target = self.cached_path(asset_id, url)
        if target.exists():
            # Touch so the trimmer treats it as recently used
            os.utime(target)
            return target

        if self.offline:
            raise PlaybackError(asset_id, f"Offline and {asset_id} is not cached", {"url": url})

        if asset_id in self._in_flight:
            raise PlaybackError(asset_id, f"Download already in progress for {asset_id}")

        self._in_flight.add(asset_id)
        partial = target.with_suffix(target.suffix + ".part")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.trim()

            with self._session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                try:
                    total = int(response.headers.get("Content-Length") or 0)
                except ValueError:
                    # Unknown size: only the final progress update is reported
                    total = 0
                written = 0
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        written += len(chunk)
                        if on_progress and total:
                            on_progress(asset_id, min(1.0, written / total))

            partial.replace(target)
            if on_progress:
                on_progress(asset_id, 1.0)
            logger.info(f"Audio asset cached: {asset_id} ({written} bytes)")
            return target

        except requests.RequestException as e:
            logger.error(f"Failed to download audio asset {asset_id}: {e}")
            raise PlaybackError(asset_id, f"Download failed: {e}", {"url": url}) from e
        except OSError as e:
            logger.error(f"Failed to write audio asset {asset_id}: {e}")
            raise PlaybackError(asset_id, f"Cache write failed: {e}", {"path": str(target)}) from e
        finally:
            self._in_flight.discard(asset_id)
            if partial.exists():
                partial.unlink()

    def cache_size(self) -> int:
        if not self.cache_dir.exists():
            return 0
        return sum(p.stat().st_size for p in self.cache_dir.iterdir() if p.is_file())

    def trim(self) -> int:
        """
        Remove least recently used files while the cache exceeds its limit.

        Returns:
            Number of bytes removed
        """
        if not self.cache_dir.exists():
            return 0

        files = [p for p in self.cache_dir.iterdir() if p.is_file() and p.suffix != ".part"]
        total = sum(p.stat().st_size for p in files)
        if total <= self.max_cache_bytes:
            return 0

        removed = 0
        for path in sorted(files, key=lambda p: p.stat().st_mtime):
            if total - removed <= self.max_cache_bytes * TRIM_TARGET:
                break
            size = path.stat().st_size
            try:
                path.unlink()
                removed += size
                logger.info(f"Removed cached file: {path.name}")
            except OSError as e:
                logger.error(f"Failed to remove cached file {path.name}: {e}")
        return removed

    def clear(self) -> None:
        if not self.cache_dir.exists():
            return
        for path in self.cache_dir.iterdir():
            if path.is_file():
                path.unlink()

    @staticmethod
    def _extension(url: str) -> str:
        suffix = Path(urlparse(url).path).suffix.lstrip(".")
        return suffix or "mp3"
