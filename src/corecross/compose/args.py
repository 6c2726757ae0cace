"""Ordered build-tool argument lists with last-assignment-wins resolution.

Both make (``NAME=value``) and cmake (``-DNAME=value`` / ``-D NAME=value``)
resolve repeated assignments by keeping the last one. Arguments stay an
ordered token list all the way to the subprocess boundary; the helpers here
make the resulting precedence inspectable.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

_MAKE_ASSIGNMENT = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_.-]*)\s*[:+?]?=(?P<value>.*)$", re.S)
_CMAKE_DEFINE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_.-]*)(?::[A-Za-z]+)?=(?P<value>.*)$", re.S)


def split_options(options: Iterable[str]) -> list[str]:
    """Split option strings that carry several whitespace-separated flags."""
    return [token for option in options for token in option.split()]


def make_assignment(token: str) -> tuple[str, str] | None:
    match = _MAKE_ASSIGNMENT.match(token)
    if match is None:
        return None
    return match.group("name"), match.group("value")


def iter_cmake_defines(tokens: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Yield ``(name, value)`` for every ``-D`` define in ``tokens``."""
    pending_flag = False
    for token in tokens:
        if pending_flag:
            pending_flag = False
            body = token
        elif token == "-D":
            pending_flag = True
            continue
        elif token.startswith("-D"):
            body = token[2:]
        else:
            continue
        match = _CMAKE_DEFINE.match(body)
        if match is not None:
            yield match.group("name"), match.group("value")


def has_cmake_define(tokens: Iterable[str], name: str) -> bool:
    return any(define == name for define, _ in iter_cmake_defines(tokens))


def resolve_cmake_defines(tokens: Iterable[str]) -> dict[str, str]:
    """Effective value of each define after last-wins resolution."""
    return dict(iter_cmake_defines(tokens))


def resolve_make_assignments(tokens: Iterable[str]) -> dict[str, str]:
    resolved: dict[str, str] = {}
    for token in tokens:
        assignment = make_assignment(token)
        if assignment is not None:
            name, value = assignment
            resolved[name] = value
    return resolved


def cmake_define(name: str, value: str) -> str:
    return f"-D{name}={value}"
