"""Git clone strategies for revisions an archive download cannot serve."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path

from corecross.process import CommandRunner, run_command

CONTENT_HASH_PATTERN = re.compile(r"^[0-9a-f]{7,40}$")


class FetchStrategy(StrEnum):
    ARCHIVE = "archive"
    SHALLOW_CLONE = "shallow_clone"
    FULL_CLONE = "full_clone"


def choose_strategy(ref: str, *, submodules: bool) -> FetchStrategy:
    """Pick the cheapest way to materialize ``ref``.

    Plain content hashes without submodules come from a forge archive. Tags
    and branches use a depth-1 clone. A hash that needs submodules requires a
    full clone because a shallow clone cannot check out an arbitrary commit.
    """
    is_hash = CONTENT_HASH_PATTERN.fullmatch(ref) is not None
    if is_hash and not submodules:
        return FetchStrategy.ARCHIVE
    if is_hash:
        return FetchStrategy.FULL_CLONE
    return FetchStrategy.SHALLOW_CLONE


def git_url(repo: str, *, host: str) -> str:
    if "://" in repo:
        if repo.startswith("git://"):
            return "https://" + repo[len("git://") :]
        return repo
    return f"{host.rstrip('/')}/{repo.strip('/')}.git"


def archive_url(repo: str, ref: str, *, host: str) -> str:
    return f"{host.rstrip('/')}/{repo.strip('/')}/archive/{ref}.tar.gz"


def shallow_clone(
    url: str,
    target_dir: Path,
    ref: str,
    *,
    submodules: bool,
    runner: CommandRunner = run_command,
) -> None:
    argv = ["git", "clone", "--quiet", "--depth", "1", "--branch", ref]
    if submodules:
        argv.append("--recurse-submodules")
    runner([*argv, url, str(target_dir)])


def full_clone(
    url: str,
    target_dir: Path,
    ref: str,
    *,
    submodules: bool,
    runner: CommandRunner = run_command,
) -> None:
    runner(["git", "clone", "--quiet", url, str(target_dir)])
    runner(["git", "-C", str(target_dir), "checkout", "--quiet", ref])
    if submodules:
        runner(["git", "-C", str(target_dir), "submodule", "update", "--init", "--recursive", "--quiet"])
