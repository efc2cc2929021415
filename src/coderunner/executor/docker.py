from __future__ import annotations
import asyncio
import os
import shlex
import shutil
import time
from typing import List, Optional

import structlog

from ..core.models import Outcome, Result
from ..runners.base import Invocation
from ..services.workspace import STDIN_FILE
from .base import ExecSpec, Executor

log = structlog.get_logger(__name__)

# written by the container only after the build step succeeded
BUILD_MARKER = ".build_ok"

# `docker run` exits 125 when the daemon refuses to create/start the container
DOCKER_RUN_ERROR = 125
# guest programs may exit 125 too; the docker CLI prefixes its own errors like this
DOCKER_ERROR_PREFIXES = ("docker:", "Unable to find image", "Error response from daemon")


def script_for(inv: Invocation) -> str:
    """Shell line run inside the container; the build step gates the run step."""
    run = f"{inv.run} < {STDIN_FILE}"
    if inv.build:
        return f"{inv.build} && touch {BUILD_MARKER} && {run}"
    return run


def describe_exit(rc: Optional[int]) -> str:
    if rc == 137:
        return "process was killed (exit status 137), likely exceeded the memory limit"
    return f"process exited with status {rc}"


class DockerExecutor(Executor):
    """
    One throwaway container per job: `docker run --rm` with the workspace bind
    mounted at `mount_point`, memory/cpu/pids caps, no network by default.
    """

    def __init__(
        self,
        docker_bin: str = "docker",
        *,
        mount_point: str = "/usr/src/app",
        network: str = "none",
        run_as_host_user: bool = True,
    ):
        self.docker_bin = docker_bin
        self.mount_point = mount_point
        self.network = network
        self.run_as_host_user = run_as_host_user

    # ---------- command builders ----------

    def command(self, spec: ExecSpec) -> List[str]:
        lim = spec.limits
        argv = [
            self.docker_bin, "run", "--rm",
            f"--name={spec.container_name}",
            f"--memory={lim.memory}",
            f"--memory-swap={lim.memory}",  # same as --memory: no swap on top
            f"--cpus={lim.cpus}",
            f"--pids-limit={lim.pids}",
            f"--network={self.network}",
        ]
        if self.run_as_host_user and hasattr(os, "getuid"):
            argv.append(f"--user={os.getuid()}:{os.getgid()}")
        argv += [
            "-v", f"{spec.workdir}:{self.mount_point}",
            "-w", self.mount_point,
            spec.image,
            "sh", "-c", spec.script,
        ]
        return argv

    # ---------- run ----------

    async def run(self, spec: ExecSpec) -> Result:
        argv = self.command(spec)
        log.info("sandbox_start", job_id=spec.job_id, image=spec.image,
                 cmd=" ".join(map(shlex.quote, argv)))
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error("sandbox_spawn_failed", job_id=spec.job_id, error=str(e))
            return Result(
                outcome=Outcome.INFRA_FAILURE, rc=None, reason="spawn_error",
                stdout="", stderr=f"cannot start isolation runtime ({self.docker_bin}): {e}",
                duration_s=time.monotonic() - start,
            )

        try:
            out_b, err_b = await asyncio.wait_for(proc.communicate(), timeout=spec.limits.timeout_s)
        except asyncio.TimeoutError:
            await self._abort(proc, spec)
            dur = time.monotonic() - start
            log.warning("sandbox_timeout", job_id=spec.job_id, timeout_s=spec.limits.timeout_s)
            return Result(
                outcome=Outcome.TIMEOUT, rc=None, reason=f"timeout_{spec.limits.timeout_s}s",
                stdout="", stderr=f"execution timed out after {spec.limits.timeout_s}s",
                duration_s=dur,
            )
        except asyncio.CancelledError:
            await self._abort(proc, spec)
            raise

        rc = proc.returncode
        out = out_b.decode("utf-8", errors="replace")
        err = err_b.decode("utf-8", errors="replace")
        dur = time.monotonic() - start
        outcome = self._classify(spec, rc, out, err)
        log.info("sandbox_exit", job_id=spec.job_id, rc=rc, outcome=outcome.value,
                 duration_s=round(dur, 3))
        return Result(
            outcome=outcome, rc=rc, reason=None if rc == 0 else f"exit_{rc}",
            stdout=out, stderr=err, duration_s=dur,
        )

    def _classify(self, spec: ExecSpec, rc: Optional[int], out: str = "", err: str = "") -> Outcome:
        if rc == 0:
            return Outcome.SUCCESS
        if rc == DOCKER_RUN_ERROR and not out and err.lstrip().startswith(DOCKER_ERROR_PREFIXES):
            return Outcome.INFRA_FAILURE
        if spec.has_build and not (spec.workdir / BUILD_MARKER).exists():
            return Outcome.BUILD_FAILURE
        return Outcome.RUNTIME_FAILURE

    async def _abort(self, proc, spec: ExecSpec) -> None:
        # killing the CLI leaves the container running, remove it explicitly
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        await self._force_remove(spec.container_name)

    async def _force_remove(self, container_name: str) -> None:
        try:
            rm = await asyncio.create_subprocess_exec(
                self.docker_bin, "rm", "-f", container_name,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await asyncio.wait_for(rm.wait(), timeout=10)
        except (OSError, asyncio.TimeoutError) as e:
            log.error("container_remove_failed", container=container_name, error=str(e))


def probe_capabilities(docker_bin: str = "docker") -> dict:
    return {
        "docker_bin": docker_bin,
        "has_docker": bool(shutil.which(docker_bin)),
    }
