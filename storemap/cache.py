"""On-disk cache for raw products.json pages.

One file per request URL at ``<cache_dir>/<md5(url)>.json`` holding the
response body verbatim. The file's mtime is its write time.
"""

import hashlib
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

from storemap.logging_config import get_logger

__all__ = ["PageCache"]


class PageCache:
    """Time-bounded cache of JSON response bodies keyed by request URL."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        ttl: int,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self.logger = logger or get_logger("cache")

    @staticmethod
    def key_for(url: str) -> str:
        """Stable key for the exact request URL, query string included."""
        return hashlib.md5(url.encode("utf-8")).hexdigest()

    def path_for(self, url: str) -> Path:
        return self.cache_dir / f"{self.key_for(url)}.json"

    def ensure_dir(self) -> bool:
        """Create the cache directory if needed.

        Returns:
            True if the directory was created, False if it already existed

        Raises:
            OSError: If the directory can't be created
        """
        if self.cache_dir.is_dir():
            return False
        self.cache_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        return True

    def _age(self, path: Path) -> float:
        return time.time() - path.stat().st_mtime

    def sweep_expired(self) -> int:
        """Delete every cache file older than the TTL.

        A file that can't be removed is logged and skipped.

        Returns:
            Number of files removed
        """
        if not self.cache_dir.is_dir():
            return 0

        removed = 0
        for path in sorted(self.cache_dir.glob("*.json")):
            try:
                if self._age(path) <= self.ttl:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.error(f"Failed to remove expired cache file {path.name}: {e}")
                continue
            removed += 1
            self.logger.debug(f"Cleaned old cache file: {path.name}")

        return removed

    def clear(self) -> int:
        """Delete every cache file regardless of age."""
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                self.logger.error(f"Failed to remove cache file {path.name}: {e}")
        return removed

    def get(self, url: str) -> Optional[bytes]:
        """Return the cached body for url if it is younger than the TTL.

        Expired files are left in place; removing them is the sweep's job.
        """
        path = self.path_for(url)
        try:
            if self._age(path) >= self.ttl:
                return None
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.warning(f"Failed to read cache file {path.name}: {e}")
            return None

    def put(self, url: str, payload: bytes) -> bool:
        """Store payload for url.

        Writes to a temporary file and renames it into place so readers
        never see a partial file. Failures are logged, not raised.

        Returns:
            True on success
        """
        path = self.path_for(url)
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
            return True
        except OSError as e:
            self.logger.error(f"Failed to write cache file {path.name}: {e}")
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
