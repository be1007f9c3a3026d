"""Read-only access to published results (local directory or HTTP)."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import httpx

from benchhub.results.models import IndexEntry, IndexFile, ResultSnapshot, SnapshotError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ResultsUnavailable(RuntimeError):
    """The index could not be fetched; there is nothing to show."""


class ResultsSource:
    """Resolves index and snapshot references against a site root.

    The site root is the directory (or URL) that *contains* ``results/``,
    because index entries carry references such as
    ``results/frameworks/<id>/latest.json``.
    """

    def __init__(
        self,
        base: Union[str, Path],
        index_ref: str = "results/index.json",
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base = str(base)
        self.index_ref = index_ref
        self.is_remote = self.base.startswith(("http://", "https://"))
        self._client = client
        self.timeout = timeout

    def _read(self, ref: str) -> str:
        if ref.startswith("./"):
            ref = ref[2:]
        ref = ref.lstrip("/")
        if self.is_remote:
            url = f"{self.base.rstrip('/')}/{ref}"
            if self._client is not None:
                response = self._client.get(url)
            else:
                response = httpx.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.text
        return (Path(self.base) / ref).read_text(encoding="utf-8")

    def fetch_index(self) -> IndexFile:
        try:
            return IndexFile.loads(self._read(self.index_ref))
        except (OSError, UnicodeDecodeError, httpx.HTTPError, SnapshotError) as e:
            raise ResultsUnavailable(f"No benchmark results available yet ({e})") from e

    def fetch_snapshot(self, entry: IndexEntry) -> ResultSnapshot:
        try:
            text = self._read(entry.latest)
        except (OSError, UnicodeDecodeError, httpx.HTTPError) as e:
            raise SnapshotError(f"Cannot fetch snapshot: {e}", framework_id=entry.id) from e
        return ResultSnapshot.loads(text, path=Path(entry.latest))


async def _fetch_all(source: ResultsSource, index: IndexFile, max_concurrency: int) -> Dict[str, ResultSnapshot]:
    semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch_one(entry: IndexEntry) -> Optional[ResultSnapshot]:
        async with semaphore:
            try:
                return await asyncio.to_thread(source.fetch_snapshot, entry)
            except SnapshotError as e:
                logger.warning(f"Omitting {entry.id}: {e}")
                return None

    snapshots = await asyncio.gather(*(fetch_one(entry) for entry in index.frameworks))
    return {
        entry.id: snapshot
        for entry, snapshot in zip(index.frameworks, snapshots)
        if snapshot is not None
    }


def load_snapshots(source: ResultsSource, index: IndexFile, max_concurrency: int = 4) -> Dict[str, ResultSnapshot]:
    """Fetch every entry's latest snapshot; failed fetches are left out.

    Args:
        source: Where to read from
        index: Index whose entries to fetch
        max_concurrency: Fetches in flight at once

    Returns:
        Mapping of framework id to snapshot, for the fetches that succeeded
    """
    if not index.frameworks:
        return {}
    return asyncio.run(_fetch_all(source, index, max(1, max_concurrency)))
