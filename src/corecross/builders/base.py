"""Typed interfaces for the make and cmake build flows."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from corecross.compose import CommandComposer
from corecross.models import ComposedCommand, CoreRecipe


@dataclass(frozen=True, slots=True)
class BuildContext:
    core: str
    recipe: CoreRecipe
    core_dir: Path
    composer: CommandComposer
    env: Mapping[str, str] = field(default_factory=dict)
    clean: bool = False


class BuildFlow(Protocol):
    kind: str

    def check(self, ctx: BuildContext) -> None:
        """Raise if the source tree cannot be built; never touches the tree."""

    def prepare(self, ctx: BuildContext) -> None:
        """Create or reset the directories the build commands run in."""

    def clean_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        """Commands whose failure is reported but does not fail the core."""

    def build_commands(self, ctx: BuildContext) -> list[ComposedCommand]:
        """Commands that must all succeed, in order."""
