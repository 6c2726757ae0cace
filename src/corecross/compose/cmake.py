"""CMake-style argument composition."""

from __future__ import annotations

from corecross.compose.args import cmake_define, has_cmake_define, split_options
from corecross.compose.validate import require_kind
from corecross.models import CMAKE, CoreRecipe, CpuTargetProfile

DEFAULT_BUILD_TYPE = "Release"

# The 32-bit ARM toolchain (GCC 8.3) trips over glibc's _Float128 headers at
# newer standard levels.
ARM32_C_STANDARD = "99"
ARM32_CXX_STANDARD = "11"


def cross_compile_defines(profile: CpuTargetProfile) -> list[str]:
    return [
        cmake_define("CMAKE_C_COMPILER", profile.tool("CC")),
        cmake_define("CMAKE_CXX_COMPILER", profile.tool("CXX")),
        cmake_define("CMAKE_C_FLAGS", profile.cflags),
        cmake_define("CMAKE_CXX_FLAGS", profile.cxxflags),
        cmake_define("CMAKE_SYSTEM_PROCESSOR", profile.arch),
        cmake_define("THREADS_PREFER_PTHREAD_FLAG", "ON"),
    ]


def compose_cmake_arguments(
    profile: CpuTargetProfile,
    recipe: CoreRecipe,
    *,
    prefix_path: str | None = None,
) -> list[str]:
    """CMake configure options for ``recipe``; cmake keeps the last duplicate.

    Order: recipe ``cmake_opts`` (split on whitespace), cross-compile
    settings, default build type unless the recipe set one, forced 32-bit
    ARM standards, then ``CMAKE_PREFIX_PATH``.
    """
    require_kind(recipe, CMAKE)
    args = split_options(recipe.cmake_opts)
    args.extend(cross_compile_defines(profile))

    if not has_cmake_define(args, "CMAKE_BUILD_TYPE"):
        args.append(cmake_define("CMAKE_BUILD_TYPE", DEFAULT_BUILD_TYPE))

    if profile.is_32bit_arm:
        args.append(cmake_define("CMAKE_C_STANDARD", ARM32_C_STANDARD))
        args.append(cmake_define("CMAKE_CXX_STANDARD", ARM32_CXX_STANDARD))

    if prefix_path:
        args.append(cmake_define("CMAKE_PREFIX_PATH", prefix_path))
    return args
