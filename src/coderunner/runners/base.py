from __future__ import annotations
import shlex
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Pattern

from ..core.utils import find_entry_name


@dataclass(frozen=True)
class Invocation:
    entry: str
    filename: str
    build: Optional[str]
    run: str


@dataclass(frozen=True)
class LanguageDescriptor:
    """
    How one language is staged, built and run.

    `source_file`, `build` and `run` are templates over `{name}`, the entry-point
    name. For most languages that is just `default_entry`; languages whose
    toolchain ties the file name to a declared type set `entry_pattern`, and the
    name is read out of the submitted source.
    """
    id: str
    image: str
    source_file: str
    run: str
    build: Optional[str] = None
    entry_pattern: Optional[Pattern[str]] = None
    default_entry: str = "Main"
    limits: Mapping[str, Any] = field(default_factory=dict)

    @property
    def compiled(self) -> bool:
        return self.build is not None

    def entry_name(self, source: str) -> str:
        return find_entry_name(source, self.entry_pattern, self.default_entry)

    def plan(self, source: str) -> Invocation:
        name = self.entry_name(source)
        quoted = shlex.quote(name)
        return Invocation(
            entry=name,
            filename=self.source_file.format(name=name),
            build=self.build.format(name=quoted) if self.build else None,
            run=self.run.format(name=quoted),
        )
