"""Build flows and the per-core build executor."""

from .base import BuildContext, BuildFlow
from .cmake import CmakeFlow
from .executor import BuildExecutor
from .make import MakeFlow
from .materialize import copy_artifact, locate_artifact

__all__ = [
    "BuildContext",
    "BuildExecutor",
    "BuildFlow",
    "CmakeFlow",
    "MakeFlow",
    "copy_artifact",
    "locate_artifact",
]
