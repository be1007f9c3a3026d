"""Append-only on-disk store of result snapshots.

Layout::

    <root>/<framework_id>/<YYYY-MM-DDTHH-MM-SS>.json   immutable snapshots
    <root>/<framework_id>/latest.json                  published pointer

The authoritative snapshot is never read from ``latest.json``; it is computed
from the snapshot files on every call to :meth:`SnapshotStore.latest`.
"""

import logging
import os
import tempfile
from datetime import timezone
from pathlib import Path
from typing import List, Optional

from benchhub.results.models import ResultSnapshot, SnapshotError, validate_framework_id

logger = logging.getLogger(__name__)

LATEST_FILENAME = "latest.json"


def snapshot_filename(snapshot: ResultSnapshot) -> str:
    """Timestamp-prefixed filename; lexicographic order equals time order."""
    return snapshot.measured_at_dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S") + ".json"


def atomic_write_text(path: Path, text: str):
    """Write text to path through a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class SnapshotStore:
    """Per-framework directories of timestamped snapshot files."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def framework_dir(self, framework_id: str) -> Path:
        return self.root / framework_id

    def framework_ids(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def snapshot_files(self, framework_id: str) -> List[Path]:
        framework_dir = self.framework_dir(framework_id)
        return [
            p for p in framework_dir.iterdir()
            if p.is_file() and p.suffix == ".json" and p.name != LATEST_FILENAME
        ]

    def latest(self, framework_id: str) -> Optional[Path]:
        """Return the newest snapshot file for a framework, or None.

        Filenames are timestamp-prefixed, so the newest file is the one whose
        name sorts last. Listing order does not matter.
        """
        files = sorted(self.snapshot_files(framework_id), key=lambda p: p.name)
        return files[-1] if files else None

    def load(self, path: Path, framework_id: Optional[str] = None) -> ResultSnapshot:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot: {e}", framework_id=framework_id, path=path) from None
        return ResultSnapshot.loads(text, path=path)

    def history(self, framework_id: str) -> List[ResultSnapshot]:
        """All readable snapshots for a framework, newest first."""
        snapshots = []
        files = sorted(self.snapshot_files(framework_id), key=lambda p: p.name, reverse=True)
        for path in files:
            try:
                snapshots.append(self.load(path, framework_id))
            except SnapshotError as e:
                logger.warning(f"Skipping unreadable snapshot in history: {e}")
        return snapshots

    def ingest(self, snapshot: ResultSnapshot) -> Path:
        """Store a snapshot under its (framework id, timestamp) key.

        Args:
            snapshot: Snapshot produced by the benchmark runner

        Returns:
            Path of the stored file

        Raises:
            SnapshotError: If a different snapshot already occupies the same key
        """
        validate_framework_id(snapshot.framework_id)
        path = self.framework_dir(snapshot.framework_id) / snapshot_filename(snapshot)
        text = snapshot.dumps()

        if path.exists():
            existing = self.load(path, snapshot.framework_id)
            if existing != snapshot:
                raise SnapshotError(
                    "A different snapshot is already stored for this timestamp",
                    framework_id=snapshot.framework_id,
                    path=path,
                )
            logger.debug(f"Snapshot already stored: {path}")
            return path

        atomic_write_text(path, text)
        logger.info(f"Stored snapshot {snapshot.framework_id} @ {snapshot.measured_at} -> {path}")
        return path

    def ingest_file(self, path: Path) -> Path:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read runner output: {e}", path=path) from None
        return self.ingest(ResultSnapshot.loads(text, path=path))

    def write_latest(self, framework_id: str, snapshot: ResultSnapshot) -> Path:
        path = self.framework_dir(framework_id) / LATEST_FILENAME
        atomic_write_text(path, snapshot.dumps())
        return path
