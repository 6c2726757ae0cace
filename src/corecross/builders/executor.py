"""Sequential per-core build driver."""

from __future__ import annotations

import time
from collections.abc import Collection, Mapping
from pathlib import Path

from corecross.builders.base import BuildContext, BuildFlow
from corecross.builders.cmake import CmakeFlow
from corecross.builders.make import MakeFlow
from corecross.builders.materialize import copy_artifact, locate_artifact
from corecross.compose import DEFAULT_OVERRIDES, CommandComposer, OverrideFn, require_kind
from corecross.config import Settings
from corecross.errors import AcquisitionError, BuildProcessError, BuildTimeoutError, ConfigurationError
from corecross.models import (
    BuildOutcome,
    BuildStage,
    BuildStatus,
    ComposedCommand,
    CoreRecipe,
    CpuTargetProfile,
    OutcomeCounter,
    source_dirname,
)
from corecross.observability import BuildLogger
from corecross.patches import PatchApplier
from corecross.process import CommandRunner, run_command

DEFAULT_FLOWS: dict[str, BuildFlow] = {
    MakeFlow.kind: MakeFlow(),
    CmakeFlow.kind: CmakeFlow(),
}


class BuildExecutor:
    """Builds cores one at a time and keeps built/failed/skipped counts.

    Each core moves ``pending -> patched -> built -> copied``; any exception
    on the way fails that core only and the run moves on to the next one.
    """

    def __init__(
        self,
        profile: CpuTargetProfile,
        cores_dir: str | Path,
        output_dir: str | Path,
        *,
        logger: BuildLogger | None = None,
        parallel: int = 1,
        dry_run: bool = False,
        clean: bool = False,
        timeout: float | None = None,
        runner: CommandRunner = run_command,
        patch_applier: PatchApplier | None = None,
        patches_dir: str | Path = "patches",
        scripts_dir: str | Path = "scripts",
        overrides: Mapping[str, OverrideFn] | None = None,
        settings: Settings | None = None,
        flows: Mapping[str, BuildFlow] | None = None,
    ) -> None:
        self.profile = profile
        self.cores_dir = Path(cores_dir)
        self.output_dir = Path(output_dir)
        self.logger = logger or BuildLogger()
        self.dry_run = dry_run
        self.clean = clean
        self.timeout = timeout
        self._deadline: float | None = None
        self.runner = runner
        self.scripts_dir = Path(scripts_dir)
        self.settings = settings or Settings()
        self.patch_applier = patch_applier or PatchApplier(
            patches_dir, runner=runner, logger=self.logger
        )
        self.composer = CommandComposer(
            profile,
            parallel=max(1, parallel),
            overrides=dict(DEFAULT_OVERRIDES if overrides is None else overrides),
            cmake_prefix_path=self.settings.cmake_prefix_path,
        )
        self.flows = dict(flows or DEFAULT_FLOWS)
        self.counters = OutcomeCounter(*(status.value for status in BuildStatus))
        self.outcomes: dict[str, BuildOutcome] = {}

        # Unwritable output is fatal to the whole run, before any core starts.
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def core_dir(self, name: str) -> Path:
        return self.cores_dir / source_dirname(name)

    def build_all(
        self,
        recipes: Mapping[str, CoreRecipe],
        *,
        only: Collection[str] | None = None,
    ) -> int:
        """Build every recipe in declaration order; 0 if at least one core built."""
        self.logger.section(f"Building Cores for {self.profile.family}")
        self.logger.info(f"Architecture: {self.profile.arch}")
        self.logger.info(f"Toolchain: {self.profile.tool('CC')}")
        self.logger.info(f"Output: {self.output_dir}")
        if self.dry_run:
            self.logger.info("Dry run: commands are printed, not executed")
        self.counters.reset()
        self.outcomes = {}

        for name, recipe in recipes.items():
            if only is not None and name not in only:
                self._record(BuildOutcome.skipped(name, "not selected"))
                continue
            self.build_one(name, recipe)

        counts = self.counters.snapshot()
        self.logger.summary(built=counts["built"], failed=counts["failed"], skipped=counts["skipped"])
        return 0 if counts["built"] > 0 else 1

    def build_one(self, name: str, recipe: CoreRecipe) -> BuildOutcome:
        stage = BuildStage.PENDING
        # The timeout bounds the whole core: prebuild, clean and build commands share it.
        self._deadline = None if self.timeout is None else time.monotonic() + self.timeout
        try:
            core_dir = self.core_dir(name)
            if not core_dir.is_dir():
                raise AcquisitionError(
                    f"Directory not found: {core_dir} (not fetched)",
                    hint="Run the fetch phase first.",
                    context={"core": name},
                )
            kind = require_kind(recipe)
            self.logger.step(f"Building {name} ({kind})", phase="build", core=name)
            flow = self.flows[kind]
            ctx = BuildContext(
                core=name,
                recipe=recipe,
                core_dir=core_dir,
                composer=self.composer,
                env=self.profile.to_environment(),
                clean=self.clean,
            )

            if self.dry_run:
                flow.check(ctx)
                for command in [*flow.clean_commands(ctx), *flow.build_commands(ctx)]:
                    self.logger.info(
                        f"[DRY RUN] ({command.cwd}) {command.display()}", phase="build", core=name
                    )
                return self._record(BuildOutcome.built(name, None))

            self._run_prebuild(name, recipe, core_dir)
            self.patch_applier.apply(name, core_dir)
            stage = BuildStage.PATCHED

            flow.check(ctx)
            flow.prepare(ctx)
            for command in flow.clean_commands(ctx):
                self._run_clean(name, command)
            for command in flow.build_commands(ctx):
                self._run(name, command)
            artifact = locate_artifact(core_dir, recipe)
            stage = BuildStage.BUILT

            destination = copy_artifact(artifact, self.output_dir, recipe)
            self.logger.success(f"Built {name} -> {destination.name}", phase="build", core=name)
            return self._record(BuildOutcome.built(name, destination))
        except Exception as exc:  # noqa: BLE001
            self.logger.error(f"{name}: Build failed: {exc}", phase="build", core=name)
            return self._record(BuildOutcome.failed(name, str(exc), stage=stage))

    def _record(self, outcome: BuildOutcome) -> BuildOutcome:
        self.outcomes[outcome.core] = outcome
        self.counters.increment(outcome.status.value)
        return outcome

    def _run(self, name: str, command: ComposedCommand) -> str:
        if self.settings.verbose:
            self.logger.detail(f"cwd: {command.cwd}", phase="build", core=name)
            self.logger.detail(f"cmd: {command.display()}", phase="build", core=name)
            for key, value in sorted(command.env.items()):
                self.logger.detail(f"env: {key}={value}", phase="build", core=name)
        return self.runner(command.argv, cwd=command.cwd, env=command.env, timeout=self._remaining(name))

    def _run_clean(self, name: str, command: ComposedCommand) -> None:
        try:
            self._run(name, command)
        except BuildProcessError as exc:
            # Trees that were never built often have nothing to clean.
            self.logger.warn(f"{name}: clean failed, continuing: {exc}", phase="build", core=name)

    def _run_prebuild(self, name: str, recipe: CoreRecipe, core_dir: Path) -> None:
        if not recipe.prebuild_script:
            return
        script = self.scripts_dir / recipe.prebuild_script
        if not script.is_file():
            raise ConfigurationError(
                f"Prebuild script not found: {script}",
                context={"core": name, "prebuild_script": recipe.prebuild_script},
            )
        self.logger.detail(
            f"Running prebuild script: {recipe.prebuild_script}", phase="prebuild", core=name
        )
        self.runner(
            [str(script.resolve()), self.profile.arch, str(core_dir.resolve())],
            cwd=core_dir,
            env=self.profile.to_environment(),
            timeout=self._remaining(name),
        )

    def _remaining(self, name: str) -> float | None:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise BuildTimeoutError(
                f"Build exceeded {self.timeout}s.",
                hint="Raise the timeout or investigate a hung build.",
                context={"core": name},
            )
        return remaining
