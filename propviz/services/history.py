"""Saved visualizations, newest first, capped at a fixed length"""

import json
import os
import threading
import uuid
from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
import structlog

from propviz.config.settings import settings
from propviz.utils.exceptions import NotFoundError

logger = structlog.get_logger(__name__)

@dataclass
class VisualizationRecord:
    """One saved before/after pair"""
    id: str
    type: str
    option: str
    original_url: str
    generated_url: str
    timestamp: str

    @classmethod
    def create(cls, viz_type: str, option: str, original_url: str, generated_url: str) -> "VisualizationRecord":
        return cls(
            id=uuid.uuid4().hex,
            type=viz_type,
            option=option,
            original_url=original_url,
            generated_url=generated_url,
            timestamp=datetime.utcnow().isoformat(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

class VisualizationHistory:
    """
    JSON-file backed history of saved visualizations

    Entries are kept newest first. Saving beyond the limit evicts the
    oldest entries.
    """

    _lock = threading.Lock()

    def __init__(self, path: Optional[str] = None, limit: Optional[int] = None):
        self.path = path or settings.HISTORY_PATH
        self.limit = limit or settings.HISTORY_LIMIT

    def list(self) -> List[VisualizationRecord]:
        with self._lock:
            return self._read()

    def save(self, record: VisualizationRecord) -> VisualizationRecord:
        with self._lock:
            records = [record] + self._read()
            evicted = records[self.limit:]
            self._write(records[:self.limit])

        if evicted:
            logger.info("History full, evicted oldest", evicted=len(evicted), limit=self.limit)
        logger.info("Visualization saved", id=record.id, type=record.type)
        return record

    def delete(self, record_id: str) -> None:
        with self._lock:
            records = self._read()
            remaining = [r for r in records if r.id != record_id]
            if len(remaining) == len(records):
                raise NotFoundError(f"History entry not found: {record_id}")
            self._write(remaining)

        logger.info("Visualization deleted", id=record_id)

    def clear(self) -> int:
        with self._lock:
            count = len(self._read())
            self._write([])

        logger.info("History cleared", removed=count)
        return count

    def _read(self) -> List[VisualizationRecord]:
        if not os.path.exists(self.path):
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("History file is corrupt, starting empty", path=self.path, error=str(e))
            return []

        if not isinstance(raw, list):
            logger.error("History file is not a list, starting empty", path=self.path, found=type(raw).__name__)
            return []

        records = []
        for item in raw:
            try:
                records.append(VisualizationRecord(**item))
            except TypeError as e:
                logger.warning("Skipping malformed history entry", path=self.path, error=str(e))

        return records[:self.limit]

    def _write(self, records: List[VisualizationRecord]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in records], f, indent=2)
        os.replace(tmp_path, self.path)
