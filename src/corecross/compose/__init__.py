"""Recipe-to-command composition for make and cmake builds."""

from .args import resolve_cmake_defines, resolve_make_assignments, split_options
from .cmake import compose_cmake_arguments
from .composer import CommandComposer
from .make import compose_make_arguments, resolve_platform
from .overrides import DEFAULT_OVERRIDES, CoreOverride, OverrideFn
from .validate import require_kind

__all__ = [
    "DEFAULT_OVERRIDES",
    "CommandComposer",
    "CoreOverride",
    "OverrideFn",
    "compose_cmake_arguments",
    "compose_make_arguments",
    "require_kind",
    "resolve_cmake_defines",
    "resolve_make_assignments",
    "resolve_platform",
    "split_options",
]
