"""Full command lines for make and cmake invocations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from corecross.compose.cmake import compose_cmake_arguments
from corecross.compose.make import compose_make_arguments
from corecross.compose.overrides import DEFAULT_OVERRIDES, OverrideFn
from corecross.compose.validate import require_kind
from corecross.models import MAKE, CoreRecipe, CpuTargetProfile


@dataclass(frozen=True, slots=True)
class CommandComposer:
    profile: CpuTargetProfile
    parallel: int = 1
    overrides: Mapping[str, OverrideFn] = field(default_factory=lambda: dict(DEFAULT_OVERRIDES))
    cmake_prefix_path: str | None = None

    def make_arguments(self, recipe: CoreRecipe) -> list[str]:
        return compose_make_arguments(self.profile, recipe, overrides=self.overrides)

    def cmake_arguments(self, recipe: CoreRecipe) -> list[str]:
        return compose_cmake_arguments(self.profile, recipe, prefix_path=self.cmake_prefix_path)

    def make_command(self, recipe: CoreRecipe, *, clean: bool = False) -> list[str]:
        require_kind(recipe, MAKE)
        command = ["make", "-f", str(recipe.makefile)]
        if clean:
            command.append("clean")
            return command
        command.append(f"-j{self.parallel}")
        command.extend(self.make_arguments(recipe))
        return command

    def cmake_configure_command(self, recipe: CoreRecipe) -> list[str]:
        # Runs from <core>/build, so the source directory is the parent.
        return ["cmake", "..", *self.cmake_arguments(recipe)]

    def cmake_build_command(self) -> list[str]:
        return ["make", f"-j{self.parallel}"]

    def commands_for(self, recipe: CoreRecipe) -> list[list[str]]:
        """Every command a build of ``recipe`` runs, in order."""
        if require_kind(recipe) == MAKE:
            return [self.make_command(recipe)]
        return [self.cmake_configure_command(recipe), self.cmake_build_command()]
