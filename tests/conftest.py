from __future__ import annotations

import pytest

from coderunner.services.workspace import WorkspaceManager
from coderunner.settings import Settings


@pytest.fixture
def jobs_dir(tmp_path):
    d = tmp_path / "jobs"
    d.mkdir()
    return d


@pytest.fixture
def settings(jobs_dir):
    return Settings(
        jobs_dir=jobs_dir,
        limits={"memory": "256m", "cpus": 1.0, "pids": 64, "timeout_s": 5, "max_output_bytes": 1024},
    )


@pytest.fixture
def workspaces(jobs_dir):
    return WorkspaceManager(jobs_dir)
