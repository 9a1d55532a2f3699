"""In-memory object store."""

from podpipe.storage.base import ObjectStore


class MemoryObjectStore(ObjectStore):
    """Dict-backed store for tests and dry runs."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.content_types: dict[str, str] = {}

    async def get(self, key: str) -> bytes | None:
        return self.objects.get(key)

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        self.objects[key] = bytes(data)
        if content_type:
            self.content_types[key] = content_type

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.content_types.pop(key, None)

    async def list(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))

    async def size(self, key: str) -> int | None:
        data = self.objects.get(key)
        return None if data is None else len(data)
