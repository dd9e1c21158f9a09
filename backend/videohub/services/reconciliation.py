"""Reclaims remote assets that no video row references any more.

Deletion removes the DB record before the remote objects, and remote deletion is
best-effort, so objects can be left behind. This sweep lists the store and
deletes whatever is unreferenced and older than the grace period (objects younger
than that may belong to a create that has not committed yet).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from videohub.db.repositories import video_repo
from videohub.services.asset_store import AssetKind, DeleteResult, S3AssetStore

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    skipped_recent: int = 0
    deleted: list[str] = field(default_factory=list)
    failed: list[DeleteResult] = field(default_factory=list)


async def sweep_orphaned_assets(
    db: AsyncSession,
    asset_store: S3AssetStore,
    grace_period: timedelta = timedelta(hours=1),
    now: datetime | None = None,
) -> SweepReport:
    now = now or datetime.now(timezone.utc)
    referenced = await video_repo.get_referenced_external_ids(db)
    report = SweepReport()

    for kind in AssetKind:
        for remote in await asset_store.list_objects(kind):
            report.scanned += 1
            if remote.external_id in referenced:
                continue
            if remote.last_modified is not None and now - remote.last_modified < grace_period:
                report.skipped_recent += 1
                continue
            result = await asset_store.delete(remote.external_id, kind)
            if result.ok:
                report.deleted.append(remote.external_id)
            else:
                report.failed.append(result)

    logger.info(
        f"Orphan sweep: scanned={report.scanned}, deleted={len(report.deleted)}, "
        f"failed={len(report.failed)}, skipped_recent={report.skipped_recent}"
    )
    return report
