from __future__ import annotations
from pathlib import Path
from typing import Optional

import structlog

from ..core.errors import CodeRunnerError, InvalidRequest
from ..core.models import ExecutionResult, Job, Limits, Outcome, Result
from ..core.utils import new_job_id
from ..executor.base import ExecSpec, Executor
from ..executor.docker import DockerExecutor, describe_exit, script_for
from ..runners import registry
from ..settings import Settings, load_settings
from .workspace import WorkspaceManager

log = structlog.get_logger(__name__)

TRUNCATED_NOTE = "\n[output truncated]"


class JobService:
    """
    Entry point of the engine: registry -> workspace -> sandbox -> teardown.

    `execute` never raises; every failure comes back as a failed
    ExecutionResult whose `kind` says what went wrong.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        workspaces: Optional[WorkspaceManager] = None,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings or load_settings()
        self.workspaces = workspaces or WorkspaceManager(Path(self.settings.jobs_dir))
        self.executor = executor or DockerExecutor(
            self.settings.docker_bin,
            mount_point=self.settings.mount_point,
            network=self.settings.network,
            run_as_host_user=self.settings.run_as_host_user,
        )

    def _limits(self) -> Limits:
        lim = self.settings.limits or {}
        return Limits(
            memory=str(lim.get("memory", "256m")),
            cpus=float(lim.get("cpus", 1.0)),
            pids=int(lim.get("pids", 128)),
            timeout_s=float(lim.get("timeout_s", 10)),
            max_output_bytes=int(lim.get("max_output_bytes", 64 * 1024)),
        )

    async def execute(self, language, source, stdin=None) -> ExecutionResult:
        try:
            return await self._execute(language, source, stdin)
        except CodeRunnerError as e:
            log.warning("job_rejected", language=language, outcome=e.outcome.value, reason=e.message)
            return ExecutionResult.failure(e.outcome, e.message)
        except Exception as e:
            log.exception("job_crashed", language=language)
            return ExecutionResult.failure(Outcome.INFRA_FAILURE, f"internal error: {e}")

    async def _execute(self, language, source, stdin) -> ExecutionResult:
        if not isinstance(language, str) or not language:
            raise InvalidRequest("language is required")
        if not isinstance(source, str):
            raise InvalidRequest("source is required")
        if stdin is not None and not isinstance(stdin, str):
            raise InvalidRequest("stdin must be text")

        descriptor = registry.resolve(language)
        job = Job(job_id=new_job_id(), language=language, source=source, stdin=stdin or "")
        inv = descriptor.plan(source)
        limits = self._limits().merged(descriptor.limits)

        workdir = await self.workspaces.stage(job, inv.filename)
        try:
            res = await self.executor.run(ExecSpec(
                job_id=job.job_id,
                workdir=workdir,
                image=descriptor.image,
                script=script_for(inv),
                limits=limits,
                container_name=f"coderunner-{job.job_id}",
                has_build=descriptor.compiled,
            ))
        finally:
            await self.workspaces.teardown(workdir)

        log.info("job_finished", job_id=job.job_id, language=language,
                 outcome=res.outcome.value, rc=res.rc, duration_s=round(res.duration_s, 3))
        return self._to_result(res, limits.max_output_bytes)

    @staticmethod
    def _to_result(res: Result, max_bytes: int) -> ExecutionResult:
        if res.outcome == Outcome.SUCCESS:
            return ExecutionResult.success(_truncate(res.stdout, max_bytes))
        output = res.stderr or res.reason or ""
        if not res.stderr and res.rc is not None:
            output = describe_exit(res.rc)
        return ExecutionResult.failure(res.outcome, _truncate(output, max_bytes))


def _truncate(text: str, max_bytes: int) -> str:
    data = text.encode("utf-8")
    if max_bytes <= 0 or len(data) <= max_bytes:
        return text
    return data[:max_bytes].decode("utf-8", errors="ignore") + TRUNCATED_NOTE
