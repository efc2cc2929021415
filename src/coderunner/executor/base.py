from dataclasses import dataclass
from pathlib import Path

from ..core.models import Limits, Result


@dataclass
class ExecSpec:
    job_id: str
    workdir: Path
    image: str
    script: str
    limits: Limits
    container_name: str
    has_build: bool = False


class Executor:
    async def run(self, spec: ExecSpec) -> Result: ...
