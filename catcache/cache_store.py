"""
Directory-backed image cache, one file per key.
"""

import asyncio
import logging
import os
import tempfile
import weakref
from pathlib import Path

from catcache.exceptions import ClientInputError, InternalError, NotFoundError, WriteError

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".jpg"


class KeyLocks:
    """
    Per-key asyncio locks.

    Locks are weakly held, so a key's lock disappears once nobody is
    holding or waiting on it.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


class CacheStore:
    """
    File cache mapping a key to the bytes stored in `<root>/<key>.jpg`.

    There is no index and no metadata: a file's presence is the entry, its
    length is the entry size. Entries never expire.
    """

    def __init__(self, root: Path):
        """
        Initialize store.

        Args:
            root: Cache root directory. Created with its parents if missing.
        """
        self.root = Path(root).resolve()
        self.locks = KeyLocks()
        self._init_dir()

    def _init_dir(self):
        """Create the cache root directory once."""
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            logger.info(f"[CacheStore] Cache directory created: {self.root}")

    def path_for(self, key: str) -> Path:
        """
        Get the file path for a key.

        Args:
            key: Cache key

        Returns:
            Absolute path of the entry file

        Raises:
            ClientInputError: If the key resolves outside the cache root
        """
        if "\0" in key:
            raise ClientInputError(f"Unusable cache key {key!r}")

        # Lexical normalization only, no filesystem access
        path = Path(os.path.normpath(self.root / f"{key}{FILE_SUFFIX}"))
        if not path.is_relative_to(self.root):
            raise ClientInputError(f"Cache key {key!r} escapes cache root")
        return path

    async def read(self, key: str) -> bytes:
        """
        Read a cached entry.

        Args:
            key: Cache key

        Returns:
            Stored bytes, possibly empty

        Raises:
            NotFoundError: If no entry exists for the key
            InternalError: If the entry exists but cannot be read
        """
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise NotFoundError(f"No cache entry for {key!r}")
        except OSError as e:
            raise InternalError(f"Failed to read cache entry {key!r}: {e}")

    async def write(self, key: str, data: bytes):
        """
        Create or replace a cached entry.

        Args:
            key: Cache key
            data: Bytes to store

        Raises:
            WriteError: On any filesystem failure
        """
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write_atomic, path, data)
        except OSError as e:
            raise WriteError(f"Failed to write cache entry {key!r}: {e}")

    async def delete(self, key: str):
        """
        Delete a cached entry.

        Args:
            key: Cache key

        Raises:
            NotFoundError: If no entry exists for the key
            InternalError: If the entry exists but cannot be removed
        """
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            raise NotFoundError(f"No cache entry for {key!r}")
        except OSError as e:
            raise InternalError(f"Failed to delete cache entry {key!r}: {e}")

    @staticmethod
    def _write_atomic(path: Path, data: bytes):
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
