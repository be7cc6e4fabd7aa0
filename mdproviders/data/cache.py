"""
Two tier (memory and disk) cache for raw downloaded payloads.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit

from .http import Fetcher, last_modified
from .models import CacheIOError

logger = logging.getLogger(__name__)


class RawPayloadCache:
    """Byte-exact cache of downloaded archives keyed by request URL.

    Entries live in memory for the lifetime of the object and on disk under
    ``directory``, one file per URL named after the URL's last path segment.
    Entries are never evicted; a disk copy is trusted only while it is
    strictly newer than the ``Last-Modified`` time reported by the server.

    The memory map is guarded by a lock. Disk writes are plain overwrites
    (no temp file and rename), so concurrent writers of the same file are
    last-writer-wins.
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        """
        Initialize payload cache.

        Args:
            directory: Disk cache directory, memory only when None
        """
        self.directory = Path(directory).expanduser() if directory is not None else None
        self._memory: Dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._directory_ready = False
        self._stats = {"memory_hits": 0, "disk_hits": 0, "downloads": 0}

    def path_for(self, url: str) -> Optional[Path]:
        """Disk location used for ``url``."""
        if self.directory is None:
            return None
        name = urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]
        if not name:
            raise ValueError(f"Cannot derive a cache file name from {url}")
        return self.directory / name

    def get(self, url: str) -> Optional[bytes]:
        """Get a payload from memory."""
        with self._lock:
            return self._memory.get(url)

    def set(self, url: str, payload: bytes) -> None:
        """Store a payload in memory."""
        with self._lock:
            self._memory[url] = bytes(payload)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._stats)
            stats["memory_entries"] = len(self._memory)
            stats["memory_bytes"] = sum(len(v) for v in self._memory.values())
        stats["directory"] = str(self.directory) if self.directory else None
        return stats

    def _count(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def _ensure_directory(self) -> None:
        if self.directory is None or self._directory_ready:
            return
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(
                f"Cannot create cache directory {self.directory}: {e}"
            ) from e
        self._directory_ready = True

    def _read_if_fresh(self, path: Path, remote_modified: Optional[datetime]) -> Optional[bytes]:
        """Read the disk copy if it is strictly newer than the remote resource."""
        if remote_modified is None or not path.is_file():
            return None

        try:
            local_modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            if remote_modified.tzinfo is None:
                remote_modified = remote_modified.replace(tzinfo=timezone.utc)
            if local_modified <= remote_modified:
                logger.info(f"Disk copy {path} is older than the remote file, refreshing")
                return None
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read cached file {path}: {e}. Downloading instead.")
            return None

    def _write(self, path: Path, payload: bytes) -> None:
        try:
            path.write_bytes(payload)
        except OSError as e:
            logger.error(f"Failed to write cache file {path}: {e}")

    def resolve(self, url: str, fetcher: Fetcher) -> bytes:
        """
        Return the payload for ``url``, downloading it only when needed.

        Args:
            url: Request URL, also the cache key
            fetcher: Fetcher used on a memory miss

        Returns:
            The raw payload bytes
        """
        cached = self.get(url)
        if cached is not None:
            logger.debug(f"{url} was found in cache.")
            self._count("memory_hits")
            return cached

        self._ensure_directory()
        path = self.path_for(url)

        with fetcher.open(url) as response:
            if path is not None:
                payload = self._read_if_fresh(path, last_modified(response))
                if payload is not None:
                    # Body is left unread; leaving the block closes the connection.
                    logger.info(f"{url} was found in disk cache.")
                    self.set(url, payload)
                    self._count("disk_hits")
                    return payload

            payload = fetcher.read_body(response)

        self._count("downloads")
        if path is not None:
            self._write(path, payload)
        self.set(url, payload)
        return payload
