"""Failure kinds raised inside the engine; the coordinator turns them into results."""
from __future__ import annotations

from .models import Outcome


class CodeRunnerError(Exception):
    outcome: Outcome = Outcome.INFRA_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(CodeRunnerError):
    outcome = Outcome.INVALID_REQUEST


class UnsupportedLanguage(CodeRunnerError):
    outcome = Outcome.UNSUPPORTED_LANGUAGE

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class StagingFailure(CodeRunnerError):
    """Workspace directory or file could not be written."""
    outcome = Outcome.STAGING_FAILURE


class InfraFailure(CodeRunnerError):
    """The isolation runtime itself is unusable."""
    outcome = Outcome.INFRA_FAILURE
