"""File-based persistence helpers for schedule records."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Iterator

from ..config import settings
from ..models.outcome import InvalidInputError

_UNSAFE_ID_CHARS = set("/\\*?[]")


class FileStorage:
    """Thin wrapper around the data root for storing JSON schedule records."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.schedules_root = self.root / "schedules"
        self.schedules_root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def check_worker_id(worker_id: str) -> str:
        """Worker ids name a single directory below the schedules root."""
        if not worker_id or worker_id in {".", ".."} or _UNSAFE_ID_CHARS.intersection(worker_id):
            raise InvalidInputError(f"Invalid worker id for file storage: {worker_id!r}", worker_id=worker_id)
        return worker_id

    def schedule_path(self, worker_id: str, schedule_date: date) -> Path:
        return self.schedules_root / self.check_worker_id(worker_id) / f"{schedule_date.isoformat()}.json"

    def iter_schedule_paths(self, worker_id: str | None = None) -> Iterator[Path]:
        if worker_id is not None:
            self.check_worker_id(worker_id)
        paths = sorted(self.schedules_root.glob("*/*.json"))
        yield from (path for path in paths if worker_id is None or path.parent.name == worker_id)

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)

    def read_json(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
