"""Core typed dataclasses for CPU profiles, recipes and build outcomes."""

from __future__ import annotations

import shlex
import threading
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from corecross.errors import ConfigurationError

MAKE = "make"
CMAKE = "cmake"
BUILD_TYPES = (MAKE, CMAKE)

DEFAULT_PLATFORM = "unix"

# Appended to the toolchain prefix to form each tool's executable name.
TOOL_SUFFIXES = {
    "CC": "gcc",
    "CXX": "g++",
    "AR": "ar",
    "AS": "as",
    "STRIP": "strip",
}


class ArchKind(StrEnum):
    ARM32 = "arm"
    ARM64 = "aarch64"
    OTHER = "other"

    @classmethod
    def from_arch(cls, arch: str) -> ArchKind:
        if arch == cls.ARM32.value:
            return cls.ARM32
        if arch == cls.ARM64.value:
            return cls.ARM64
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class CpuTargetProfile:
    """Immutable toolchain and flag set for one CPU family."""

    family: str
    arch: str
    target_cross: str
    cflags: str
    cxxflags: str
    ldflags: str = ""
    platform: str = DEFAULT_PLATFORM
    gnu_target_name: str | None = None
    target_cpu: str | None = None
    target_arch: str | None = None
    buildroot: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        expected = _arch_for_prefix(self.target_cross)
        if expected is not None and expected is not self.arch_kind:
            raise ConfigurationError(
                "Toolchain prefix does not match the configured architecture.",
                hint=f"A `{self.target_cross}` toolchain builds for `{expected.value}`.",
                context={
                    "family": self.family,
                    "arch": self.arch,
                    "target_cross": self.target_cross,
                },
            )

    @property
    def arch_kind(self) -> ArchKind:
        return ArchKind.from_arch(self.arch)

    @property
    def is_32bit_arm(self) -> bool:
        return self.arch_kind is ArchKind.ARM32

    def tool(self, variable: str) -> str:
        """Return the prefixed executable name for ``CC``, ``AR`` and friends."""
        return f"{self.target_cross}{TOOL_SUFFIXES[variable]}"

    def to_environment(self) -> dict[str, str]:
        env = {
            "ARCH": self.arch,
            **{variable: self.tool(variable) for variable in TOOL_SUFFIXES},
            "CFLAGS": self.cflags,
            "CXXFLAGS": self.cxxflags,
            "LDFLAGS": self.ldflags,
            "TARGET_CROSS": self.target_cross,
            # Some core Makefiles read the terminal type.
            "TERM": "xterm",
        }
        if self.gnu_target_name:
            env["GNU_TARGET_NAME"] = self.gnu_target_name
        return env

    def default_platform(self) -> str:
        return self.platform


def _arch_for_prefix(prefix: str) -> ArchKind | None:
    if prefix.startswith("aarch64"):
        return ArchKind.ARM64
    if prefix.startswith("arm"):
        return ArchKind.ARM32
    return None


@dataclass(frozen=True, slots=True)
class CoreRecipe:
    """Declarative build description for one core.

    Loading is deliberately lenient: a recipe missing a field its build type
    needs is still loaded, and only fails when that core is fetched or built.
    """

    name: str
    repo: str | None = None
    ref: str | None = None
    submodules: bool = False
    build_type: str | None = None
    build_dir: str | None = None
    makefile: str | None = None
    platform: str | None = None
    extra_args: tuple[str, ...] = ()
    cmake_opts: tuple[str, ...] = ()
    so_file: str | None = None
    output_name: str | None = None
    prebuild_script: str | None = None
    # Field problems found while loading; they fail this core only, at build time.
    load_errors: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, name: str, payload: Mapping[str, Any]) -> CoreRecipe:
        errors: list[str] = []
        return cls(
            name=name,
            repo=_optional_str(payload.get("repo")),
            # `tag` is preferred over the legacy `commit` key.
            ref=_optional_str(payload.get("tag")) or _optional_str(payload.get("commit")),
            submodules=_flag("submodules", payload.get("submodules"), errors),
            build_type=_optional_str(payload.get("build_type")),
            build_dir=_optional_str(payload.get("build_dir")),
            makefile=_optional_str(payload.get("makefile")),
            platform=_optional_str(payload.get("platform")),
            extra_args=_str_tuple("extra_args", payload.get("extra_args"), errors),
            cmake_opts=_str_tuple("cmake_opts", payload.get("cmake_opts"), errors),
            so_file=_optional_str(payload.get("so_file")),
            output_name=_optional_str(payload.get("output_name")),
            prebuild_script=_optional_str(payload.get("prebuild_script")),
            load_errors=tuple(errors),
        )

    @property
    def source_dirname(self) -> str:
        return source_dirname(self.name)


def source_dirname(core_name: str) -> str:
    """Directory name a core's source tree lives under inside a cores directory."""
    return f"libretro-{core_name}"


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _str_tuple(key: str, value: Any, errors: list[str]) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list | tuple):
        return tuple(str(item) for item in value)
    errors.append(f"`{key}` must be a list of strings, got {type(value).__name__}")
    return ()


def _flag(key: str, value: Any, errors: list[str]) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    errors.append(f"`{key}` must be true or false, got {value!r}")
    return False


@dataclass(frozen=True, slots=True)
class ComposedCommand:
    """One ready-to-run subprocess invocation."""

    argv: tuple[str, ...]
    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)

    def display(self) -> str:
        return shlex.join(self.argv)


class BuildStage(StrEnum):
    """Furthest step a core reached; stages only move forward."""

    PENDING = "pending"
    PATCHED = "patched"
    BUILT = "built"
    COPIED = "copied"


class BuildStatus(StrEnum):
    BUILT = "built"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    core: str
    status: BuildStatus
    artifact: Path | None = None
    reason: str | None = None
    stage: BuildStage = BuildStage.PENDING

    @classmethod
    def built(cls, core: str, artifact: Path | None) -> BuildOutcome:
        return cls(core=core, status=BuildStatus.BUILT, artifact=artifact, stage=BuildStage.COPIED)

    @classmethod
    def failed(cls, core: str, reason: str, *, stage: BuildStage = BuildStage.PENDING) -> BuildOutcome:
        return cls(core=core, status=BuildStatus.FAILED, reason=reason, stage=stage)

    @classmethod
    def skipped(cls, core: str, reason: str | None = None) -> BuildOutcome:
        return cls(core=core, status=BuildStatus.SKIPPED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is BuildStatus.BUILT


class OutcomeCounter:
    """Mutex-guarded tally of per-core outcomes, shared by worker threads."""

    def __init__(self, *keys: str) -> None:
        self._keys = keys
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter({key: 0 for key in keys})

    def increment(self, key: str) -> None:
        if key not in self._keys:
            raise KeyError(key)
        with self._lock:
            self._counts[key] += 1

    def __getitem__(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {key: self._counts[key] for key in self._keys}

    def reset(self) -> None:
        with self._lock:
            for key in self._keys:
                self._counts[key] = 0


__all__ = [
    "BUILD_TYPES",
    "CMAKE",
    "MAKE",
    "ArchKind",
    "BuildOutcome",
    "BuildStage",
    "BuildStatus",
    "ComposedCommand",
    "CoreRecipe",
    "CpuTargetProfile",
    "OutcomeCounter",
    "source_dirname",
]
