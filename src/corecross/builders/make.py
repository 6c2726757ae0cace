"""Make flow: run the core's own Makefile from its declared subdirectory."""

from __future__ import annotations

from pathlib import Path

from corecross.builders.base import BuildContext
from corecross.compose import require_kind
from corecross.errors import BuildProcessError
from corecross.models import MAKE, ComposedCommand


class MakeFlow:
    kind = MAKE

    def work_dir(self, ctx: BuildContext) -> Path:
        require_kind(ctx.recipe, MAKE)
        return ctx.core_dir / str(ctx.recipe.build_dir)

    def check(self, ctx: BuildContext) -> None:
        work_dir = self.work_dir(ctx)
        if not work_dir.is_dir():
            raise BuildProcessError(
                f"Build directory not found: {work_dir}",
                hint="Check `build_dir` in the recipe against the fetched tree.",
                context={"core": ctx.core, "build_dir": str(work_dir)},
            )
        makefile = work_dir / str(ctx.recipe.makefile)
        if not makefile.is_file():
            raise BuildProcessError(
                f"Makefile not found: {makefile}",
                hint="Check `makefile` in the recipe against the fetched tree.",
                context={"core": ctx.core, "makefile": str(makefile)},
            )

    def prepare(self, ctx: BuildContext) -> None:
        # Make builds in the source tree itself.
        return None

    def clean_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        if not ctx.clean:
            return []
        return [self._command(ctx, ctx.composer.make_command(ctx.recipe, clean=True))]

    def build_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        return [self._command(ctx, ctx.composer.make_command(ctx.recipe))]

    def _command(self, ctx: BuildContext, argv: list[str]) -> ComposedCommand:
        return ComposedCommand(argv=tuple(argv), cwd=self.work_dir(ctx), env=dict(ctx.env))
