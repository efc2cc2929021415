from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- workspace ----
    jobs_dir: Path = Path("tmp/jobs")

    # ---- isolation runtime ----
    docker_bin: str = "docker"
    mount_point: str = "/usr/src/app"
    network: str = "none"
    run_as_host_user: bool = True

    # ---- http ----
    host: str = "0.0.0.0"
    port: int = 5000

    log_level: str = "INFO"

    # ---- config files ----
    limits_file: Path = Path("conf/limits.yaml")

    # ---- merged limits (read from YAML) ----
    limits: Dict[str, Any] = {}

    # env prefix CODERUNNER_*
    model_config = SettingsConfigDict(env_prefix="CODERUNNER_", extra="ignore")


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    return data if isinstance(data, dict) else {}


def load_settings() -> Settings:
    # 0) base from CODERUNNER_* env
    s = Settings()

    # 1) conf/sandbox.yaml (or CODERUNNER_CONF); env vars keep priority
    data = _read_yaml(Path(os.environ.get("CODERUNNER_CONF", "conf/sandbox.yaml")))
    update = {
        name: data[name]
        for name in Settings.model_fields
        if name in data and name not in s.model_fields_set
    }
    if update:
        # round-trip through the model so YAML strings get coerced (Path, bool, int)
        s = Settings.model_validate({**s.model_dump(exclude_unset=True), **update})

    # 2) conf/limits.yaml (optional)
    if not s.limits:
        s = s.model_copy(update={"limits": _read_yaml(s.limits_file)})
    return s
