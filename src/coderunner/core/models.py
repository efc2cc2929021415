from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class Outcome(str, Enum):
    SUCCESS = "success"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    STAGING_FAILURE = "staging_failure"
    BUILD_FAILURE = "build_failure"
    RUNTIME_FAILURE = "runtime_failure"
    TIMEOUT = "timeout"
    INFRA_FAILURE = "infra_failure"


@dataclass(frozen=True)
class Limits:
    memory: str = "256m"        # docker --memory
    cpus: float = 1.0           # docker --cpus
    pids: int = 128             # docker --pids-limit
    timeout_s: float = 10.0     # wall clock, whole container
    max_output_bytes: int = 64 * 1024

    def merged(self, overrides: Mapping[str, Any]) -> "Limits":
        known = {k: v for k, v in overrides.items() if k in self.__dataclass_fields__}
        return replace(self, **known)


@dataclass(frozen=True)
class Job:
    job_id: str
    language: str
    source: str
    stdin: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Result:
    """Outcome of one sandboxed invocation, before it is collapsed for the caller."""
    outcome: Outcome
    rc: Optional[int]
    reason: Optional[str]
    stdout: str
    stderr: str
    duration_s: float


@dataclass(frozen=True)
class ExecutionResult:
    failed: bool
    output: str
    kind: Outcome = Outcome.SUCCESS

    @classmethod
    def success(cls, output: str) -> "ExecutionResult":
        return cls(failed=False, output=output, kind=Outcome.SUCCESS)

    @classmethod
    def failure(cls, kind: Outcome, output: str) -> "ExecutionResult":
        return cls(failed=True, output=output, kind=kind)

    def to_dict(self) -> dict:
        return {"failed": self.failed, "output": self.output, "kind": self.kind.value}
