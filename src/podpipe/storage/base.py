"""Object store interface."""

from abc import ABC, abstractmethod


class ObjectStore(ABC):
    """Minimal key/value blob store (S3/R2-like semantics).

    Keys are slash-separated paths such as ``episodes/ep-001/meta.json``.
    There are no multi-key transactions and no conditional writes.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the object's bytes, or None if it does not exist."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Create or overwrite an object."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object (no error if missing)."""

    @abstractmethod
    async def list(self, prefix: str = "") -> list[str]:
        """List keys starting with ``prefix`` in lexicographic order."""

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def size(self, key: str) -> int | None:
        """Return the object's size in bytes, or None if it does not exist."""
        data = await self.get(key)
        return None if data is None else len(data)

    async def copy(self, source: str, destination: str) -> bool:
        """Copy one object. Returns False if the source does not exist."""
        data = await self.get(source)
        if data is None:
            return False
        await self.put(destination, data)
        return True

    async def move(self, source: str, destination: str) -> bool:
        """Move one object (copy, then delete the source)."""
        if not await self.copy(source, destination):
            return False
        await self.delete(source)
        return True

    async def move_prefix(self, source_prefix: str, destination_prefix: str) -> int:
        """Move every object under one prefix to another.

        Returns:
            Number of objects moved
        """
        moved = 0
        for key in await self.list(source_prefix):
            target = destination_prefix + key[len(source_prefix) :]
            if await self.move(key, target):
                moved += 1
        return moved
