"""Key-value store backed by one JSON file on disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import orjson

from rae.utils.logging import get_logger


logger = get_logger(__name__)


class JsonFileStore:
    """Keeps every key in a single JSON file; rewritten atomically on set."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            logger.warning("store.file.unreadable path=%s error=%s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        os.replace(tmp_path, self.path)
