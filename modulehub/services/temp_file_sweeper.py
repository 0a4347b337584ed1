"""
Sweep of abandoned temporary uploads.

Each cycle:
1. scans for modules owning at least one temporary attachment,
2. for every such module, in its own session, deletes the temporary
   attachments uploaded at or before `now - retention`,
3. commits only the modules that actually lost a file.

A failing module is logged and skipped. A failing scan aborts the cycle
and is retried by `run_sweep_with_retry` with exponential backoff.
Only database records are removed; the bytes on disk stay where they are.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from modulehub.config import (
    TEMP_FILE_RETENTION_HOURS,
    CLEANUP_MAX_RETRIES,
    CLEANUP_RETRY_BASE_SECONDS,
    CLEANUP_STORE_TIMEOUT_SECONDS,
)
from modulehub.database import AsyncSessionLocal
from modulehub.helpers.datetime_utils import utcnow
from modulehub.models import ModuleFile

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    modules_scanned: int = 0
    modules_updated: int = 0
    files_removed: int = 0
    failed_modules: List[UUID] = field(default_factory=list)


class TempFileSweeper:
    """
    Removes expired temporary attachments.

    session_factory, clock and timeouts are injectable so tests can run a
    sweep against a throwaway database at any simulated time.
    """

    def __init__(
        self,
        session_factory=AsyncSessionLocal,
        clock: Callable[[], datetime] = utcnow,
        retention: timedelta = timedelta(hours=TEMP_FILE_RETENTION_HOURS),
        store_timeout: float = CLEANUP_STORE_TIMEOUT_SECONDS,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.retention = retention
        self.store_timeout = store_timeout

    async def find_modules_with_temporary_files(self) -> List[UUID]:
        async with self.session_factory() as db:
            result = await asyncio.wait_for(
                db.execute(
                    select(ModuleFile.module_id)
                    .where(ModuleFile.temporary.is_(True))
                    .distinct()
                ),
                timeout=self.store_timeout,
            )
            return list(result.scalars().all())

    async def sweep_module(self, module_id: UUID, cutoff: datetime) -> int:
        async with self.session_factory() as db:
            result = await asyncio.wait_for(
                db.execute(
                    select(ModuleFile).where(
                        ModuleFile.module_id == module_id,
                        ModuleFile.temporary.is_(True),
                        ModuleFile.uploaded_at <= cutoff,
                    )
                ),
                timeout=self.store_timeout,
            )
            expired = result.scalars().all()
            if not expired:
                return 0

            for record in expired:
                await db.delete(record)
            await asyncio.wait_for(db.commit(), timeout=self.store_timeout)
            return len(expired)

    async def sweep(self) -> SweepReport:
        """
        One pass over every module. Raises only when the scan itself fails.
        """
        cutoff = self.clock() - self.retention
        module_ids = await self.find_modules_with_temporary_files()

        report = SweepReport(modules_scanned=len(module_ids))
        for module_id in module_ids:
            try:
                removed = await self.sweep_module(module_id, cutoff)
            except Exception as e:
                logger.error(
                    f"Error cleaning temporary files of module {module_id}: {str(e)}",
                    exc_info=True,
                )
                report.failed_modules.append(module_id)
                continue

            if removed:
                report.modules_updated += 1
                report.files_removed += removed

        logger.info(
            f"Temporary file sweep removed {report.files_removed} file(s) "
            f"from {report.modules_updated} of {report.modules_scanned} module(s)"
        )
        return report


async def run_sweep_with_retry(
    sweep: Callable[[], Awaitable[SweepReport]],
    max_retries: int = CLEANUP_MAX_RETRIES,
    base_delay: float = CLEANUP_RETRY_BASE_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[SweepReport]:
    """
    Run a sweep, retrying store failures after base_delay * 2**attempt.
    Returns None when every attempt failed; the next scheduled cycle tries again.
    """
    attempt = 0
    while True:
        try:
            return await sweep()
        except (SQLAlchemyError, asyncio.TimeoutError, OSError) as e:
            if attempt >= max_retries:
                logger.error(
                    f"Failed to clean up temporary files after {max_retries + 1} attempts: {str(e)}"
                )
                return None

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"Database error during temporary file cleanup, retrying in {delay:.1f}s: {str(e)}"
            )
            attempt += 1
            await sleep(delay)
