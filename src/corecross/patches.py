"""Idempotent patch application for fetched core sources."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from corecross.errors import BuildProcessError, PatchError
from corecross.observability import BuildLogger
from corecross.process import CommandRunner, run_command


class PatchState(StrEnum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


@dataclass(frozen=True, slots=True)
class PatchResult:
    patch: Path
    state: PatchState


@dataclass(frozen=True, slots=True)
class PatchTool:
    """Argument vectors for one patch program."""

    name: str
    check: tuple[str, ...]
    reverse_check: tuple[str, ...]
    apply: tuple[str, ...]

    def argv(self, base: tuple[str, ...], patch: Path) -> list[str]:
        return [*base, str(patch)]


GIT_APPLY = PatchTool(
    name="git apply",
    check=("git", "apply", "--check"),
    reverse_check=("git", "apply", "--reverse", "--check"),
    apply=("git", "apply"),
)

# --forward makes an already-applied hunk a failure instead of a prompt.
GNU_PATCH = PatchTool(
    name="patch",
    check=("patch", "-p1", "--dry-run", "--forward", "--batch", "--silent", "-i"),
    reverse_check=("patch", "-p1", "--dry-run", "--reverse", "--forward", "--batch", "--silent", "-i"),
    apply=("patch", "-p1", "--forward", "--batch", "--silent", "-i"),
)


class PatchApplier:
    """Applies ``<patches_dir>/<core>/*.patch`` in sorted order, at most once.

    A patch that does not apply forward but does apply in reverse is taken
    to be applied already and skipped.
    """

    def __init__(
        self,
        patches_dir: str | Path,
        *,
        runner: CommandRunner = run_command,
        logger: BuildLogger | None = None,
    ) -> None:
        self.patches_dir = Path(patches_dir)
        self.runner = runner
        self.logger = logger or BuildLogger()

    def patches_for(self, core: str) -> list[Path]:
        core_dir = self.patches_dir / core
        if not core_dir.is_dir():
            return []
        return sorted(core_dir.glob("*.patch"))

    def apply(self, core: str, source_dir: Path) -> list[PatchResult]:
        patches = self.patches_for(core)
        if not patches:
            return []
        tool = tool_for(source_dir)
        self.logger.detail(f"Applying {len(patches)} patch(es) with {tool.name}", phase="patch", core=core)
        return [self._apply_one(core, source_dir, tool, patch) for patch in patches]

    def _apply_one(self, core: str, source_dir: Path, tool: PatchTool, patch: Path) -> PatchResult:
        patch = patch.resolve()
        self.logger.detail(f"  {patch.name}", phase="patch", core=core)
        if not self._succeeds(tool.argv(tool.check, patch), source_dir):
            if self._succeeds(tool.argv(tool.reverse_check, patch), source_dir):
                self.logger.detail("    (already applied, skipping)", phase="patch", core=core)
                return PatchResult(patch=patch, state=PatchState.ALREADY_APPLIED)
            raise PatchError(
                f"Patch {patch.name} doesn't apply cleanly.",
                hint="Refresh the patch against the pinned revision.",
                context={"core": core, "patch": str(patch), "source_dir": str(source_dir)},
            )
        try:
            self.runner(tool.argv(tool.apply, patch), cwd=source_dir)
        except BuildProcessError as exc:
            raise PatchError(
                f"Patch {patch.name} failed to apply.",
                context={"core": core, "patch": str(patch), "stderr": exc.context.get("stderr", "")},
            ) from exc
        return PatchResult(patch=patch, state=PatchState.APPLIED)

    def _succeeds(self, argv: Sequence[str], cwd: Path) -> bool:
        try:
            self.runner(argv, cwd=cwd)
        except BuildProcessError:
            return False
        return True


def tool_for(source_dir: Path) -> PatchTool:
    # `git apply` inside a parent repository resolves paths from that
    # repository's root, so it is only used on a tree's own checkout.
    if (source_dir / ".git").exists():
        return GIT_APPLY
    return GNU_PATCH
