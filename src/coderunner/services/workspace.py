from __future__ import annotations
import asyncio
import shutil
from pathlib import Path

import structlog

from ..core.errors import StagingFailure
from ..core.models import Job

log = structlog.get_logger(__name__)

STDIN_FILE = "input.txt"


class WorkspaceManager:
    """
    One directory per job under `jobs_dir`:
      <jobs_dir>/<job_id>/
        ├─ input.txt       (stdin, possibly empty)
        ├─ <source file>   (name decided by the language)
        └─ build artifacts (compiled languages only)
    The directory lives exactly as long as the job.
    """

    def __init__(self, jobs_dir: Path):
        # absolute, since it is handed to docker as a bind mount
        self.jobs_dir = jobs_dir if jobs_dir.is_absolute() else jobs_dir.resolve()

    def path_for(self, job_id: str) -> Path:
        return self.jobs_dir / job_id

    async def stage(self, job: Job, filename: str) -> Path:
        fut = asyncio.ensure_future(asyncio.to_thread(self._stage, job, filename))
        try:
            return await asyncio.shield(fut)
        except asyncio.CancelledError:
            # the worker thread cannot be stopped; let it finish, then undo its work
            try:
                p = await fut
            except StagingFailure:
                pass
            else:
                await asyncio.to_thread(self._remove, p)
            raise

    def _stage(self, job: Job, filename: str) -> Path:
        p = self.path_for(job.job_id)
        try:
            self.jobs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingFailure(f"cannot create workspace: {e}") from e
        try:
            p.mkdir(exist_ok=False)
        except FileExistsError:
            # belongs to someone else, leave it alone
            raise StagingFailure(f"workspace already exists: {p.name}") from None
        except OSError as e:
            raise StagingFailure(f"cannot create workspace: {e}") from e

        try:
            (p / STDIN_FILE).write_text(job.stdin or "", encoding="utf-8")
            (p / filename).write_text(job.source, encoding="utf-8")
        except (OSError, UnicodeError) as e:
            self._remove(p)
            raise StagingFailure(f"cannot write job files: {e}") from e

        log.info("job_staged", job_id=job.job_id, workspace=str(p), source_file=filename)
        return p

    async def teardown(self, path: Path) -> None:
        await asyncio.to_thread(self._remove, path)

    def _remove(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.error("teardown_failed", workspace=str(path), error=str(e))
