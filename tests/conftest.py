"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from corecross.errors import BuildProcessError
from corecross.models import CoreRecipe, CpuTargetProfile


@dataclass
class Call:
    argv: tuple[str, ...]
    cwd: Path | None
    env: Mapping[str, str] | None
    timeout: float | None


@dataclass
class FakeRunner:
    """Records every command; ``on_call`` may create files or raise."""

    on_call: Callable[[Call], str | None] | None = None
    calls: list[Call] = field(default_factory=list)

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        call = Call(argv=tuple(str(part) for part in argv), cwd=cwd, env=env, timeout=timeout)
        self.calls.append(call)
        if self.on_call is not None:
            return self.on_call(call) or ""
        return ""

    def argvs(self) -> list[tuple[str, ...]]:
        return [call.argv for call in self.calls]


def failing(argv: Sequence[str]) -> BuildProcessError:
    return BuildProcessError(
        f"Command failed: {' '.join(argv)}",
        context={"returncode": "1", "stderr": "boom"},
    )


@pytest.fixture
def arm64_profile() -> CpuTargetProfile:
    return CpuTargetProfile(
        family="cortex-a53",
        arch="aarch64",
        target_cross="aarch64-linux-gnu-",
        cflags="-O2 -pipe",
        cxxflags="-O2 -pipe",
    )


@pytest.fixture
def arm32_profile() -> CpuTargetProfile:
    return CpuTargetProfile(
        family="cortex-a7",
        arch="arm",
        target_cross="arm-linux-gnueabihf-",
        cflags="-O2 -marm",
        cxxflags="-O2 -marm",
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


def make_recipe(name: str = "core1", **overrides: object) -> CoreRecipe:
    fields: dict[str, object] = {
        "repo": f"libretro/{name}",
        "ref": "v1.0",
        "build_type": "make",
        "build_dir": ".",
        "makefile": "Makefile",
        "platform": "unix",
        "so_file": f"{name}_libretro.so",
    }
    fields.update(overrides)
    return CoreRecipe(name=name, **fields)  # type: ignore[arg-type]


def cmake_recipe(name: str = "core1", **overrides: object) -> CoreRecipe:
    fields: dict[str, object] = {
        "build_type": "cmake",
        "build_dir": None,
        "makefile": None,
        "platform": None,
        "so_file": f"build/{name}_libretro.so",
    }
    fields.update(overrides)
    return make_recipe(name, **fields)
