"""Recipe completeness checks run before any command is composed."""

from __future__ import annotations

from corecross.errors import CompositionError
from corecross.models import BUILD_TYPES, CMAKE, MAKE, CoreRecipe

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    MAKE: ("build_dir", "makefile", "so_file"),
    CMAKE: ("so_file",),
}


def require_kind(recipe: CoreRecipe, expected: str | None = None) -> str:
    """Return the recipe's build type after checking its required fields."""
    if recipe.load_errors:
        raise CompositionError(
            f"Invalid recipe: {'; '.join(recipe.load_errors)}.",
            context={"core": recipe.name},
        )
    kind = recipe.build_type
    if kind not in BUILD_TYPES:
        raise CompositionError(
            f"Unknown build type `{kind}`." if kind else "Missing `build_type`.",
            hint=f"Set build_type to one of: {', '.join(BUILD_TYPES)}.",
            context={"core": recipe.name},
        )
    if expected is not None and kind != expected:
        raise CompositionError(
            f"Recipe is a `{kind}` recipe, not `{expected}`.",
            context={"core": recipe.name},
        )
    missing = [name for name in REQUIRED_FIELDS[kind] if not getattr(recipe, name)]
    if missing:
        raise CompositionError(
            f"Missing {', '.join(f'`{name}`' for name in missing)} for {kind} recipe.",
            context={"core": recipe.name},
        )
    return kind
