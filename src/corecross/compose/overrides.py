"""Per-core overrides for cores whose build needs CPU-family knowledge.

Overrides are looked up by core name. Each one maps a profile to the
platform token the core must use and the make assignments appended after
the recipe's own ``extra_args``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from corecross.models import ArchKind, CpuTargetProfile


@dataclass(frozen=True, slots=True)
class CoreOverride:
    platform: str | None = None
    extra_args: tuple[str, ...] = ()


OverrideFn = Callable[[CpuTargetProfile], CoreOverride]

# family -> (platform, ARCH make variable)
FLYCAST_FAMILIES: Mapping[str, tuple[str, str]] = {
    "cortex-a53": ("odroid-n2", "arm64"),  # H700/A133 handhelds
    "cortex-a35": ("odroid-n2", "arm64"),  # RG351 series
    "cortex-a55": ("odroidc4", "arm64"),  # RK3566 handhelds
    "cortex-a7": ("arm", "arm"),
}


def flycast_xtreme(profile: CpuTargetProfile) -> CoreOverride:
    if profile.family in FLYCAST_FAMILIES:
        platform, arch = FLYCAST_FAMILIES[profile.family]
    elif profile.arch_kind is ArchKind.ARM64:
        platform, arch = "arm64", "arm64"
    elif profile.arch_kind is ArchKind.ARM32:
        # 32-bit families outside the table still need the ARM GLES build.
        platform, arch = "arm", "arm"
    else:
        return CoreOverride(platform=profile.default_platform(), extra_args=("HAVE_OPENMP=1",))
    return CoreOverride(
        platform=platform,
        extra_args=("HAVE_OPENMP=1", "FORCE_GLES=1", f"ARCH={arch}", "LDFLAGS=-lrt"),
    )


DEFAULT_OVERRIDES: Mapping[str, OverrideFn] = {
    "flycast-xtreme": flycast_xtreme,
}
