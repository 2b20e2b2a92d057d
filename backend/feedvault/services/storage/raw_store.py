"""
Raw Store

Durable blob storage for unmodified source payloads, keyed by hierarchical
path: raw/source={name}/date={YYYY-MM-DD}/{timestamp}-{hash}.json

Objects are written once and never mutated. Each object has a sidecar
{key}.meta.json holding its content type and metadata.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from feedvault.services.base import RawObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta.json"


def build_raw_key(source_name: str, captured_at: str, content_hash: str) -> str:
    """Storage key namespaced by source and capture date."""
    date = captured_at.split("T")[0]
    return f"raw/source={source_name}/date={date}/{captured_at}-{content_hash}.json"


class RawStore(ABC):
    """Raw store contract."""

    @abstractmethod
    async def put(
        self,
        key: str,
        body: bytes,
        metadata: Dict[str, str],
        content_type: str = "application/json",
    ) -> str:
        """Store `body` at `key`. Returns the object location."""
        pass

    @abstractmethod
    async def get(self, location: str) -> bytes:
        """Read the object at `location`. Raises RawObjectNotFoundError."""
        pass


class FileRawStore(RawStore):
    """
    Raw store backed by a local directory (data lake layout).

    Files are organized by their key below `base_dir`.
    """

    def __init__(self, base_dir: Path, create_dirs: bool = True):
        self.base_dir = Path(base_dir)
        self.create_dirs = create_dirs

        if create_dirs:
            self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise StorageError("RawStore", f"Key escapes the store: {key}")
        return path

    async def put(
        self,
        key: str,
        body: bytes,
        metadata: Dict[str, str],
        content_type: str = "application/json",
    ) -> str:
        path = self._path_for(key)
        sidecar = {"content_type": content_type, "metadata": metadata}
        try:
            await asyncio.to_thread(self._write, path, body, sidecar)
        except OSError as e:
            logger.error(f"Failed to write raw object {key}: {e}")
            raise StorageError("RawStore", f"Failed to write {key}: {e}") from e

        logger.debug(f"Wrote raw object to: {path}")
        return key

    def _write(self, path: Path, body: bytes, sidecar: dict) -> None:
        if self.create_dirs:
            path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp name first so readers never see a partial object
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(body)
        tmp.replace(path)
        meta_path = path.with_name(path.name + META_SUFFIX)
        meta_path.write_text(json.dumps(sidecar, indent=2), encoding="utf-8")

    async def get(self, location: str) -> bytes:
        path = self._path_for(location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise RawObjectNotFoundError("RawStore", f"No raw object at {location}") from e
        except OSError as e:
            raise StorageError("RawStore", f"Failed to read {location}: {e}") from e

    async def get_metadata(self, location: str) -> Optional[Dict[str, str]]:
        """Metadata stored alongside an object, or None if absent."""
        path = self._path_for(location)
        meta_path = path.with_name(path.name + META_SUFFIX)
        try:
            text = await asyncio.to_thread(meta_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        return json.loads(text)["metadata"]
