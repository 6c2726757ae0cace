"""Recipe-driven cross-compilation of libretro cores."""

from .builders import BuildExecutor
from .compose import CommandComposer
from .config import Settings, load_profile, load_recipes
from .errors import (
    AcquisitionError,
    ArtifactMissingError,
    BuildProcessError,
    BuildTimeoutError,
    CompositionError,
    ConfigurationError,
    CoreCrossError,
    ErrorCode,
    PatchError,
)
from .fetch import SourceAcquirer
from .models import BuildOutcome, BuildStatus, CoreRecipe, CpuTargetProfile
from .orchestrator import Orchestrator
from .patches import PatchApplier

__all__ = [
    "AcquisitionError",
    "ArtifactMissingError",
    "BuildExecutor",
    "BuildOutcome",
    "BuildProcessError",
    "BuildStatus",
    "BuildTimeoutError",
    "CommandComposer",
    "CompositionError",
    "ConfigurationError",
    "CoreCrossError",
    "CoreRecipe",
    "CpuTargetProfile",
    "ErrorCode",
    "Orchestrator",
    "PatchApplier",
    "PatchError",
    "SourceAcquirer",
    "Settings",
    "load_profile",
    "load_recipes",
]
