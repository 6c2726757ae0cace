"""Locate a built core library and copy it into the output directory."""

from __future__ import annotations

import shutil
from pathlib import Path

from corecross.errors import ArtifactMissingError
from corecross.models import CoreRecipe


def locate_artifact(core_dir: Path, recipe: CoreRecipe) -> Path:
    """Return ``core_dir / so_file``, which must exist after a build.

    A zero exit status from the build tool is not taken as proof of output.
    """
    if not recipe.so_file:
        raise ArtifactMissingError(
            f"Missing `so_file` for {recipe.name}.",
            context={"core": recipe.name},
        )
    artifact = core_dir / recipe.so_file
    if not artifact.is_file():
        raise ArtifactMissingError(
            f"Built library not found: {artifact}",
            hint="The build exited successfully; check `so_file` in the recipe.",
            context={"core": recipe.name, "so_file": str(artifact)},
        )
    return artifact


def output_filename(artifact: Path, recipe: CoreRecipe) -> str:
    return recipe.output_name or artifact.name


def copy_artifact(artifact: Path, output_dir: Path, recipe: CoreRecipe) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    destination = output_dir / output_filename(artifact, recipe)
    shutil.copy2(artifact, destination)
    return destination
