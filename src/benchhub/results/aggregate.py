"""Merge per-framework result snapshots into latest pointers and an index."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from benchhub.config import AppConfig
from benchhub.results.models import (
    IndexEntry,
    IndexFile,
    SnapshotError,
    format_timestamp,
    validate_framework_id,
)
from benchhub.results.store import SnapshotStore, atomic_write_text

logger = logging.getLogger(__name__)


@dataclass
class FrameworkOutcome:
    """Result of processing one framework directory."""

    framework_id: str
    status: str  # "updated", "skipped", "failed"
    entry: Optional[IndexEntry] = None
    error: Optional[str] = None
    version_mismatch: bool = False


@dataclass
class MergeReport:
    """What a merge run produced."""

    index: IndexFile
    index_path: Path
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    version_mismatches: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """False only when every framework with data failed."""
        return bool(self.updated) or not self.failed


def process_framework(
    store: SnapshotStore,
    framework_id: str,
    contract_version: int,
    latest_prefix: str = "results/frameworks",
    strict_contract: bool = False,
) -> FrameworkOutcome:
    """Select the latest snapshot of one framework and publish its pointer.

    Never raises for per-framework problems; they come back as a
    ``failed`` outcome so the rest of the merge carries on.
    """
    path = None
    try:
        validate_framework_id(framework_id)
        path = store.latest(framework_id)
        if path is None:
            logger.info(f"No result files found for {framework_id}, skipping")
            return FrameworkOutcome(framework_id, "skipped")

        snapshot = store.load(path, framework_id)
        if snapshot.framework_id != framework_id:
            raise SnapshotError(
                f"Snapshot framework_id {snapshot.framework_id!r} does not match its directory",
                framework_id=framework_id,
                path=path,
            )

        mismatch = snapshot.contract_version != contract_version
        if mismatch:
            logger.warning(
                f"Contract version mismatch for {framework_id}: snapshot has "
                f"{snapshot.contract_version}, current is {contract_version} ({path})"
            )
            if strict_contract:
                return FrameworkOutcome(
                    framework_id,
                    "failed",
                    error=f"contract version {snapshot.contract_version} != {contract_version}",
                    version_mismatch=True,
                )

        store.write_latest(framework_id, snapshot)
        logger.info(f"Updated latest.json for {framework_id} -> {path.name}")

        latest_ref = f"{latest_prefix.rstrip('/')}/{framework_id}/latest.json"
        return FrameworkOutcome(
            framework_id,
            "updated",
            entry=IndexEntry.from_snapshot(snapshot, latest_ref),
            version_mismatch=mismatch,
        )
    except (SnapshotError, OSError) as e:
        logger.error(f"Error processing {framework_id} ({path}): {e}")
        logger.debug("Traceback:", exc_info=True)
        return FrameworkOutcome(framework_id, "failed", error=str(e))


async def _process_all(
    store: SnapshotStore,
    framework_ids: List[str],
    contract_version: int,
    latest_prefix: str,
    strict_contract: bool,
    max_concurrency: int,
) -> List[FrameworkOutcome]:
    semaphore = asyncio.Semaphore(max_concurrency)

    async def run_one(framework_id: str) -> FrameworkOutcome:
        async with semaphore:
            return await asyncio.to_thread(
                process_framework,
                store,
                framework_id,
                contract_version,
                latest_prefix,
                strict_contract,
            )

    return await asyncio.gather(*(run_one(fid) for fid in framework_ids))


def build_index(entries: List[IndexEntry], contract_version: int, generated_at: Optional[datetime] = None) -> IndexFile:
    generated_at = generated_at or datetime.now(timezone.utc)
    return IndexFile(
        generated_at=format_timestamp(generated_at),
        contract_version=contract_version,
        frameworks=entries,
    )


def merge_results(
    results_dir: Path,
    contract_version: int,
    latest_prefix: str = "results/frameworks",
    strict_contract: bool = False,
    max_concurrency: int = 1,
) -> MergeReport:
    """Scan ``results_dir/frameworks`` and write latest pointers plus ``index.json``.

    Args:
        results_dir: Directory holding ``frameworks/`` and receiving ``index.json``
        contract_version: Current contract version, stamped into the index
        latest_prefix: Prefix of the per-framework ``latest`` reference
        strict_contract: Skip snapshots whose contract version differs
        max_concurrency: Frameworks processed at once (1 = sequential)

    Returns:
        MergeReport describing which frameworks were updated, skipped or failed

    Raises:
        OSError: If the index itself cannot be written
    """
    results_dir = Path(results_dir)
    frameworks_dir = results_dir / "frameworks"

    if not frameworks_dir.exists():
        logger.info("No frameworks directory found. Creating empty index.")
        frameworks_dir.mkdir(parents=True, exist_ok=True)

    store = SnapshotStore(frameworks_dir)
    framework_ids = store.framework_ids()

    if max_concurrency > 1 and len(framework_ids) > 1:
        outcomes = asyncio.run(
            _process_all(store, framework_ids, contract_version, latest_prefix, strict_contract, max_concurrency)
        )
    else:
        outcomes = [
            process_framework(store, fid, contract_version, latest_prefix, strict_contract)
            for fid in framework_ids
        ]

    index_path = results_dir / "index.json"
    index = build_index([o.entry for o in outcomes if o.entry is not None], contract_version)
    report = MergeReport(index=index, index_path=index_path)
    for outcome in outcomes:
        if outcome.status == "updated":
            report.updated.append(outcome.framework_id)
        elif outcome.status == "skipped":
            report.skipped.append(outcome.framework_id)
        else:
            report.failed[outcome.framework_id] = outcome.error or "unknown error"
        if outcome.version_mismatch:
            report.version_mismatches.append(outcome.framework_id)

    # Fatal on failure: downstream consumers depend on this file
    atomic_write_text(index_path, index.dumps())

    logger.info(f"Index generated with {len(index.frameworks)} frameworks: {', '.join(report.updated) or '-'}")
    if report.failed:
        logger.warning(f"Failed frameworks: {', '.join(sorted(report.failed))}")
    logger.info(f"Saved to: {index_path}")
    return report


def run_aggregation(config: Optional[AppConfig] = None) -> MergeReport:
    """Run a merge using the application configuration."""
    config = config or AppConfig()
    return merge_results(
        config.results_dir,
        contract_version=config.contract_version(),
        latest_prefix=config.latest_prefix,
        strict_contract=config.strict_contract,
        max_concurrency=config.max_concurrency,
    )
