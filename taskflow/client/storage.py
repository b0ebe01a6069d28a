"""Durable key/value storage backends for client state."""

import os
import tempfile
from pathlib import Path


class MemoryStorage:
    """Process-local storage, mainly for tests and short-lived scripts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, name: str) -> str | None:
        return self._items.get(name)

    def set_item(self, name: str, value: str) -> None:
        self._items[name] = value

    def remove_item(self, name: str) -> None:
        self._items.pop(name, None)


class JSONFileStorage:
    """One file per namespace under ``directory``; writes are atomic renames."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def get_item(self, name: str) -> str | None:
        path = self._path(name)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, name: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(name))
        except OSError:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    def remove_item(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)
