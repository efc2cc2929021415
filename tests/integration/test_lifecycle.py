"""
Real containers. Needs a docker daemon and network access to pull the images;
skipped otherwise. Set CODERUNNER_API_URL to also hit a running server.
"""
from __future__ import annotations

import asyncio
import os
import shutil
import subprocess

import pytest

from coderunner.core.models import Outcome
from coderunner.services.job_service import JobService


def _docker_ok() -> bool:
    if not shutil.which("docker"):
        return False
    try:
        return subprocess.run(["docker", "info"], capture_output=True, timeout=10).returncode == 0
    except (OSError, subprocess.TimeoutExpired):
        return False


docker = pytest.mark.skipif(not _docker_ok(), reason="docker daemon not available")

HELLO = {
    "python": "print('Hello, World!')",
    "javascript": "console.log('Hello, World!')",
    "cpp": '#include <iostream>\nint main() { std::cout << "Hello, World!" << std::endl; }\n',
    "java": 'public class Greeter {\n  public static void main(String[] a) {\n'
            '    System.out.println("Hello, World!");\n  }\n}\n',
}

ECHO = {
    "python": "print(input())",
    "javascript": "process.stdin.on('data', d => process.stdout.write(d.toString()))",
    "cpp": "#include <iostream>\n#include <string>\nint main() { std::string s; std::cin >> s; std::cout << s; }\n",
    "java": "import java.util.Scanner;\npublic class Main {\n  public static void main(String[] a) {\n"
            "    System.out.println(new Scanner(System.in).next());\n  }\n}\n",
}


@pytest.fixture
def svc(settings):
    limits = dict(settings.limits, timeout_s=120, max_output_bytes=65536)
    return JobService(settings.model_copy(update={"limits": limits}))


def run(coro):
    return asyncio.run(coro)


@docker
@pytest.mark.docker
@pytest.mark.parametrize("language", sorted(HELLO))
def test_hello_world(svc, jobs_dir, language):
    res = run(svc.execute(language, HELLO[language], ""))
    assert res.failed is False, res.output
    assert "Hello, World!" in res.output
    assert list(jobs_dir.iterdir()) == []


@docker
@pytest.mark.docker
@pytest.mark.parametrize("language", sorted(ECHO))
def test_stdin_echo(svc, language):
    res = run(svc.execute(language, ECHO[language], "abc"))
    assert res.failed is False, res.output
    assert "abc" in res.output


@docker
@pytest.mark.docker
def test_compile_error(svc, jobs_dir):
    res = run(svc.execute("cpp", "int main() { return 0 }", ""))
    assert res.failed
    assert res.kind == Outcome.BUILD_FAILURE
    assert "error" in res.output
    assert list(jobs_dir.iterdir()) == []


@docker
@pytest.mark.docker
def test_runtime_error(svc):
    res = run(svc.execute("python", "raise SystemExit('bad input')", ""))
    assert res.failed
    assert res.kind == Outcome.RUNTIME_FAILURE
    assert "bad input" in res.output


@docker
@pytest.mark.docker
def test_memory_blowup_is_contained(svc):
    src = "chunks = []\nwhile True:\n    chunks.append(bytearray(16 * 1024 * 1024))\n"
    res = run(svc.execute("python", src, ""))
    assert res.failed
    assert res.kind == Outcome.RUNTIME_FAILURE


@docker
@pytest.mark.docker
def test_runaway_loop_times_out(settings, jobs_dir):
    limits = dict(settings.limits, timeout_s=3)
    svc = JobService(settings.model_copy(update={"limits": limits}))
    res = run(svc.execute("python", "while True:\n    pass\n", ""))
    assert res.failed
    assert res.kind == Outcome.TIMEOUT
    assert list(jobs_dir.iterdir()) == []


@docker
@pytest.mark.docker
def test_concurrent_same_language(svc):
    async def both():
        return await asyncio.gather(
            svc.execute("python", "print('A' + input())", "1"),
            svc.execute("python", "print('B' + input())", "2"),
        )

    a, b = run(both())
    assert a.output.strip() == "A1"
    assert b.output.strip() == "B2"


@pytest.mark.skipif(not os.environ.get("CODERUNNER_API_URL"), reason="CODERUNNER_API_URL not set")
def test_live_server():
    import requests

    base = os.environ["CODERUNNER_API_URL"].rstrip("/")
    r = requests.post(f"{base}/execute", json={"language": "python", "source": "print('ok')"}, timeout=120)
    assert r.status_code == 200
    body = r.json()
    assert body["failed"] is False
    assert body["output"].strip() == "ok"
    assert requests.post(f"{base}/execute", json={"language": "python"}, timeout=10).status_code == 400
