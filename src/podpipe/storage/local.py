"""Filesystem-backed object store."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

import aiofiles

from podpipe.storage.base import ObjectStore
from podpipe.utils.errors import StorageError

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Object store that maps keys to files under a root directory.

    Writes are atomic (temp file in the same directory, then rename), so a
    reader never sees a half-written document. Keys that would resolve
    outside the root are rejected.

    Example:
        >>> store = LocalObjectStore(Path("~/.local/share/podpipe/store"))
        >>> await store.put("index.json", b"{}")
    """

    def __init__(self, root: Path):
        """Initialize local store.

        Args:
            root: Directory holding all objects (created if missing)
        """
        self.root = root.expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        """Resolve a key to a file path inside the root.

        Raises:
            StorageError: If the key is empty or escapes the root
        """
        key = key.strip("/")
        if not key or "\0" in key:
            raise StorageError(f"Invalid object key: {key!r}")

        path = self.root / key
        try:
            path.resolve().relative_to(self.root.resolve())
        except ValueError:
            raise StorageError(f"Object key {key!r} resolves outside the store root")
        return path

    async def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
        os.close(fd)
        temp_path = Path(temp_name)

        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            await asyncio.to_thread(temp_path.replace, path)
        except OSError as e:
            await asyncio.to_thread(temp_path.unlink, missing_ok=True)
            raise StorageError(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def list(self, prefix: str = "") -> list[str]:
        def scan() -> list[str]:
            keys = []
            for item in self.root.rglob("*"):
                if not item.is_file() or item.name.startswith(".tmp_"):
                    continue
                key = item.relative_to(self.root).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
            return sorted(keys)

        return await asyncio.to_thread(scan)

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path(key).is_file)

    async def size(self, key: str) -> int | None:
        path = self._path(key)
        try:
            stat = await asyncio.to_thread(path.stat)
        except FileNotFoundError:
            return None
        return stat.st_size
