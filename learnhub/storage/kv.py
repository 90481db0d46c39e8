import os
import re
import tempfile
import threading
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """String key-value storage with the getItem/setItem shape of browser storage."""

    def __init__(self):
        self.lock = threading.RLock()

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        super().__init__()
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        with self.lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self.lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self.lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self.lock:
            return list(self._items)


class FileKeyValueStore(KeyValueStore):
    """One `<key>.json` file per key inside a directory. Writes are atomic renames."""

    def __init__(self, directory: str):
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self.lock:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self.lock:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except OSError:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        with self.lock:
            if path.exists():
                path.unlink()

    def keys(self) -> List[str]:
        with self.lock:
            return sorted(p.stem for p in self.directory.glob("*.json"))


def create_key_value_store(path: Optional[str]) -> KeyValueStore:
    if not path:
        logger.info("Using in-memory key-value store for local fallback storage")
        return MemoryKeyValueStore()
    logger.info(f"Using file key-value store at {path} for local fallback storage")
    return FileKeyValueStore(path)
