"""Top-level sequencing for one CPU target: load, fetch, build, report."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from corecross.builders import BuildExecutor
from corecross.config import DEFAULT_RECIPES_DIR, Settings, load_profile, load_recipes, recipe_file_for
from corecross.errors import ConfigurationError
from corecross.fetch import FetchResult, FetchStatus, SourceAcquirer
from corecross.models import CoreRecipe
from corecross.observability import BuildLogger
from corecross.process import CommandRunner, run_command

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path("output/cache")


class Orchestrator:
    """Runs the fetch phase and then the build phase for ``cpu_family``.

    Only configuration problems found while loading the profile or the
    recipe set raise; per-core failures only show up in the exit status.
    """

    def __init__(
        self,
        cpu_family: str,
        *,
        cores_dir: str | Path | None = None,
        cache_dir: str | Path = DEFAULT_CACHE_DIR,
        output_dir: str | Path | None = None,
        recipe_file: str | Path | None = None,
        recipes_dir: str | Path = DEFAULT_RECIPES_DIR,
        patches_dir: str | Path = "patches",
        scripts_dir: str | Path = "scripts",
        cores: Sequence[str] | None = None,
        fetch_workers: int | None = None,
        parallel: int | None = None,
        dry_run: bool = False,
        clean: bool = False,
        timeout: float | None = None,
        skip_fetch: bool = False,
        skip_build: bool = False,
        logger: BuildLogger | None = None,
        settings: Settings | None = None,
        runner: CommandRunner = run_command,
        acquirer: SourceAcquirer | None = None,
    ) -> None:
        self.cpu_family = cpu_family
        self.settings = settings or Settings.from_env()
        # Per-family cores directories keep object files from leaking between targets.
        self.cores_dir = Path(cores_dir or f"output/cores-{cpu_family}").resolve()
        self.cache_dir = Path(cache_dir).resolve()
        self.output_dir = Path(output_dir or f"output/{cpu_family}").resolve()
        self.recipe_file = (
            Path(recipe_file) if recipe_file is not None else recipe_file_for(cpu_family, recipes_dir)
        )
        self.patches_dir = Path(patches_dir)
        self.scripts_dir = Path(scripts_dir)
        self.selected = tuple(cores) if cores else None
        self.fetch_workers = fetch_workers or self.settings.fetch_workers
        self.parallel = parallel or self.settings.jobs
        self.dry_run = dry_run
        self.clean = clean
        self.timeout = timeout
        self.skip_fetch = skip_fetch
        self.skip_build = skip_build
        self.logger = logger or BuildLogger()
        self.runner = runner
        self._acquirer = acquirer

        self.profile = load_profile(cpu_family, recipe_file=self.recipe_file)
        self.fetch_results: dict[str, FetchResult] = {}
        self.executor: BuildExecutor | None = None

    def load_recipes(self) -> dict[str, CoreRecipe]:
        self.logger.info(f"Loading recipes from {self.recipe_file}")
        recipes = load_recipes(self.recipe_file)
        if self.selected is not None:
            unknown = [name for name in self.selected if name not in recipes]
            if unknown:
                raise ConfigurationError(
                    f"Unknown core(s): {', '.join(unknown)}",
                    hint=f"Run `corecross list {self.cpu_family}` to see available cores.",
                    context={"recipe_file": str(self.recipe_file)},
                )
        return recipes

    def acquirer(self) -> SourceAcquirer:
        if self._acquirer is None:
            self._acquirer = SourceAcquirer(
                self.cores_dir,
                self.cache_dir,
                logger=self.logger,
                workers=self.fetch_workers,
                runner=self.runner,
            )
        return self._acquirer

    def run(self) -> int:
        self.logger.section("Cores Build System")
        self.logger.info(f"CPU Family: {self.cpu_family}")
        self.logger.info(f"Architecture: {self.profile.arch}")

        recipes = self.load_recipes()
        selected = (
            recipes
            if self.selected is None
            else {name: recipe for name, recipe in recipes.items() if name in self.selected}
        )

        if not self.skip_fetch:
            self.fetch_results = self.acquirer().ensure_all(selected)

        if self.skip_build:
            failed = [r for r in self.fetch_results.values() if r.status is FetchStatus.FAILED]
            return 1 if failed else 0

        self.executor = BuildExecutor(
            self.profile,
            self.cores_dir,
            self.output_dir,
            logger=self.logger,
            parallel=self.parallel,
            dry_run=self.dry_run,
            clean=self.clean,
            timeout=self.timeout,
            runner=self.runner,
            patches_dir=self.patches_dir,
            scripts_dir=self.scripts_dir,
            settings=self.settings,
        )
        exit_code = self.executor.build_all(recipes, only=self.selected)
        logger.debug("Build phase for %s finished with status %d", self.cpu_family, exit_code)
        return exit_code
