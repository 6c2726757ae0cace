"""Make-style argument composition."""

from __future__ import annotations

from collections.abc import Mapping

from corecross.compose.overrides import DEFAULT_OVERRIDES, CoreOverride, OverrideFn
from corecross.compose.validate import require_kind
from corecross.models import MAKE, CoreRecipe, CpuTargetProfile

_UNRESOLVED_MARKERS = ("$(", "${")


def is_unresolved(platform: str | None) -> bool:
    """True for a missing platform or one still holding a make variable reference."""
    if not platform:
        return True
    return any(marker in platform for marker in _UNRESOLVED_MARKERS)


def resolve_platform(
    profile: CpuTargetProfile,
    recipe: CoreRecipe,
    override: CoreOverride | None = None,
) -> str:
    if override is not None and override.platform:
        return override.platform
    platform = recipe.platform
    if platform is None or is_unresolved(platform):
        return profile.default_platform()
    return platform


def toolchain_arguments(profile: CpuTargetProfile) -> list[str]:
    # Some platform presets in core Makefiles never set CC, so the toolchain
    # goes on the command line and not only in the environment.
    return [
        f"CC={profile.tool('CC')}",
        f"CXX={profile.tool('CXX')}",
        f"AR={profile.tool('AR')} cru",
    ]


def compose_make_arguments(
    profile: CpuTargetProfile,
    recipe: CoreRecipe,
    *,
    overrides: Mapping[str, OverrideFn] = DEFAULT_OVERRIDES,
) -> list[str]:
    """Make variable assignments for ``recipe``; later assignments win.

    Order: toolchain, ``platform=``, recipe ``extra_args``, then any
    per-core override assignments.
    """
    require_kind(recipe, MAKE)
    override_fn = overrides.get(recipe.name)
    override = override_fn(profile) if override_fn is not None else None

    args = toolchain_arguments(profile)
    args.append(f"platform={resolve_platform(profile, recipe, override)}")
    args.extend(recipe.extra_args)
    if override is not None:
        args.extend(override.extra_args)
    return args
