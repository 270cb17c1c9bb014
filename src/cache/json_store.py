# src/cache/json_store.py — v2
"""JSON file-based store (CACHE_BACKEND=json).

One file per key under CACHE_ROOT; the file holds {"key": ..., "value": ...}
so the original key survives the filename escaping.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path

from lexiread.cache.base_store import DEFAULT_QUOTA_BYTES, BaseKeyValueStore, entry_size

logger = logging.getLogger(__name__)


class JsonKeyValueStore(BaseKeyValueStore):
    """File-based store using one JSON document per key."""

    def __init__(
        self, cache_root: Path | str, quota_bytes: int = DEFAULT_QUOTA_BYTES
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = quota_bytes

    async def get(self, keys: list[str] | None = None) -> dict[str, str]:
        if keys is None:
            return dict(self._iter_all())
        result: dict[str, str] = {}
        for key in keys:
            path = self._entry_path(key)
            if not path.exists():
                continue
            record = self._read(path)
            if record is not None:
                result[key] = record[1]
        return result

    async def set(self, entries: dict[str, str]) -> None:
        for key, value in entries.items():
            path = self._entry_path(key)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps({"key": key, "value": value}), encoding="utf-8")
            # Atomic per key: readers see the old or the new file, never half.
            os.replace(tmp, path)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            path = self._entry_path(key)
            if path.exists():
                path.unlink()

    async def clear(self) -> None:
        for path in self._root.glob("*.json"):
            path.unlink()

    async def bytes_in_use(self) -> int:
        return sum(entry_size(k, v) for k, v in self._iter_all())

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    def _iter_all(self) -> list[tuple[str, str]]:
        records: list[tuple[str, str]] = []
        for path in self._root.glob("*.json"):
            record = self._read(path)
            if record is not None:
                records.append(record)
        return records

    def _read(self, path: Path) -> tuple[str, str] | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return str(data["key"]), str(data["value"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Skipping unreadable cache file %s: %s", path.name, e)
            return None

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key (hashed: keys hold URLs and free text)."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"
