from __future__ import annotations
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field

from .core.models import Outcome
from .executor.docker import probe_capabilities
from .logging import setup_logging
from .runners.registry import supported_languages
from .services.job_service import JobService
from .settings import load_settings

log = setup_logging(load_settings().log_level)

app = FastAPI(title="Code Runner API")
# DEV: open CORS. Restrict allow_origins to the frontend domain in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    # a wrongly typed body is rejected like a missing field
    return JSONResponse(status_code=400, content={"detail": "language, source and stdin must be strings"})


@lru_cache(maxsize=1)
def get_service() -> JobService:
    return JobService(load_settings())


# --------- Schemas ---------
class ExecuteReq(BaseModel):
    language: Optional[str] = None
    # the editor frontend sends `code` / `input`
    source: Optional[str] = Field(None, validation_alias=AliasChoices("source", "code"))
    stdin: Optional[str] = Field(None, validation_alias=AliasChoices("stdin", "input"))


class ExecuteRes(BaseModel):
    failed: bool
    output: str
    kind: Outcome


class HealthRes(BaseModel):
    ok: bool
    docker: bool


# --------- Endpoints ---------

@app.get("/")
async def root():
    return {"message": "Welcome to the code runner API"}


@app.get("/health", response_model=HealthRes)
def health(svc: JobService = Depends(get_service)):
    caps = probe_capabilities(svc.settings.docker_bin)
    return HealthRes(ok=True, docker=caps["has_docker"])


@app.get("/languages", response_model=List[str])
def languages():
    return supported_languages()


@app.post("/execute", response_model=ExecuteRes)
async def execute(req: ExecuteReq, svc: JobService = Depends(get_service)):
    if not req.language or req.source is None:
        raise HTTPException(status_code=400, detail="language and source are required")
    try:
        res = await svc.execute(req.language, req.source, req.stdin)
    except Exception:
        log.exception("execute_crashed", language=req.language)
        raise HTTPException(status_code=500, detail="Internal server error")
    return ExecuteRes(failed=res.failed, output=res.output, kind=res.kind)


def main() -> None:
    import uvicorn

    s = load_settings()
    uvicorn.run("coderunner.api:app", host=s.host, port=s.port, log_level=s.log_level.lower())
