"""CMake flow: configure and build out of tree in ``<core>/build``."""

from __future__ import annotations

import shutil
from pathlib import Path

from corecross.builders.base import BuildContext
from corecross.compose import require_kind
from corecross.models import CMAKE, ComposedCommand

BUILD_SUBDIR = "build"


class CmakeFlow:
    kind = CMAKE

    def work_dir(self, ctx: BuildContext) -> Path:
        return ctx.core_dir / BUILD_SUBDIR

    def check(self, ctx: BuildContext) -> None:
        require_kind(ctx.recipe, CMAKE)

    def prepare(self, ctx: BuildContext) -> None:
        work_dir = self.work_dir(ctx)
        if ctx.clean and work_dir.exists():
            shutil.rmtree(work_dir)
        work_dir.mkdir(parents=True, exist_ok=True)

    def clean_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        # Cleaning is the removal of the build directory in prepare().
        return []

    def build_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        work_dir = self.work_dir(ctx)
        env = dict(ctx.env)
        return [
            ComposedCommand(
                argv=tuple(ctx.composer.cmake_configure_command(ctx.recipe)), cwd=work_dir, env=env
            ),
            ComposedCommand(argv=tuple(ctx.composer.cmake_build_command()), cwd=work_dir, env=env),
        ]
