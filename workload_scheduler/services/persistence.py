"""
Persistence boundary: the whole store as one JSON document on disk.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from workload_scheduler.models import Store
from workload_scheduler.core.config import DATA_FILE, STORAGE_KEY
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)


def serialize(store: Store) -> str:
    """The store as a JSON string; ``normalize`` reads it back."""
    return json.dumps(store.to_dict(), indent=2)


class SnapshotRepository:
    """Reads and writes the persisted snapshot stored under ``STORAGE_KEY``."""

    def __init__(self, path: Optional[str] = None, key: str = STORAGE_KEY):
        self.path = Path(path or DATA_FILE)
        self.key = key

    def load(self) -> Any:
        """
        Return the raw persisted snapshot, or None when nothing was saved yet.
        Unreadable files are logged, moved aside and treated as absent.
        """
        if not self.path.exists():
            return None
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read snapshot {self.path}: {e}")
            self.quarantine()
            return None
        if not isinstance(document, dict) or (document and self.key not in document):
            logger.warning(f"Snapshot {self.path} has no '{self.key}' entry")
            self.quarantine()
            return None
        return document.get(self.key)

    def quarantine(self) -> Optional[Path]:
        """Move the current file to ``<name>.corrupt-<timestamp>`` so the next save cannot destroy it."""
        if not self.path.exists():
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        os.replace(self.path, target)
        logger.warning(f"Moved unusable snapshot {self.path} to {target}")
        return target

    def save(self, store: Store) -> None:
        """Write the full store atomically (temporary file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({self.key: store.to_dict()}, indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".snapshot-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
