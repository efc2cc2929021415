from __future__ import annotations
import re
import secrets
import time
from typing import Optional, Pattern


def new_job_id() -> str:
    # ms timestamp keeps ids time-ordered, the token keeps them unique within one ms
    return f"job-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def find_entry_name(source: str, pattern: Optional[Pattern[str]], default: str) -> str:
    """
    Return the first identifier captured by `pattern` in `source`, or `default`
    when there is no pattern or nothing matches.
    """
    if pattern is None or not source:
        return default
    m = pattern.search(source)
    return m.group(1) if m else default


# `public class Foo`, `public final class Foo`, `public abstract class Foo`
PUBLIC_CLASS = re.compile(r"\bpublic\s+(?:(?:final|abstract|static)\s+)*class\s+([A-Za-z_]\w*)")
