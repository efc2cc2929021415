from __future__ import annotations
from typing import Dict, List

from ..core.errors import UnsupportedLanguage
from ..core.utils import PUBLIC_CLASS
from .base import LanguageDescriptor

_DESCRIPTORS = (
    LanguageDescriptor(
        id="python",
        image="python:3.9",
        source_file="userCode.py",
        run="python userCode.py",
    ),
    LanguageDescriptor(
        id="javascript",
        image="node:18",
        source_file="userCode.js",
        run="node userCode.js",
    ),
    LanguageDescriptor(
        id="cpp",
        image="gcc:11",
        source_file="userCode.cpp",
        build="g++ userCode.cpp -o a.out",
        run="./a.out",
    ),
    LanguageDescriptor(
        id="java",
        image="eclipse-temurin:17",
        source_file="{name}.java",
        build="javac {name}.java",
        run="java -cp . {name}",
        entry_pattern=PUBLIC_CLASS,
        default_entry="Main",
        # the JVM starts a few dozen threads before main()
        limits={"pids": 256},
    ),
)

LANGUAGES: Dict[str, LanguageDescriptor] = {d.id: d for d in _DESCRIPTORS}


def resolve(language: str) -> LanguageDescriptor:
    try:
        return LANGUAGES[language]
    except (KeyError, TypeError):
        raise UnsupportedLanguage(str(language)) from None


def supported_languages() -> List[str]:
    return sorted(LANGUAGES)
