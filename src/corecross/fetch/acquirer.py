"""Source acquisition for every core of a CPU target."""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from corecross.errors import AcquisitionError
from corecross.fetch.archive import extract_archive
from corecross.fetch.cache import ArchiveCache
from corecross.fetch.git import (
    FetchStrategy,
    archive_url,
    choose_strategy,
    full_clone,
    git_url,
    shallow_clone,
)
from corecross.models import CoreRecipe, OutcomeCounter, source_dirname
from corecross.observability import BuildLogger
from corecross.process import CommandRunner, run_command

GITHUB_HOST = "https://github.com"
REVISION_MARKER = ".corecross-revision"
DEFAULT_FETCH_WORKERS = 4


class FetchStatus(StrEnum):
    FETCHED = "fetched"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchResult:
    core: str
    status: FetchStatus
    path: Path
    strategy: FetchStrategy | None = None
    reason: str | None = None


class SourceAcquirer:
    """Makes sure each core's source tree exists under ``cores_dir``.

    An existing directory is never re-fetched or re-validated; a differing
    revision marker is only reported. Each core fails independently.
    """

    def __init__(
        self,
        cores_dir: str | Path,
        cache_dir: str | Path,
        *,
        logger: BuildLogger | None = None,
        workers: int = DEFAULT_FETCH_WORKERS,
        host: str = GITHUB_HOST,
        runner: CommandRunner = run_command,
        cache: ArchiveCache | None = None,
    ) -> None:
        self.cores_dir = Path(cores_dir)
        self.cache = cache or ArchiveCache(cache_dir)
        self.logger = logger or BuildLogger()
        self.workers = max(1, workers)
        self.host = host
        self.runner = runner
        self.counters = OutcomeCounter(*(status.value for status in FetchStatus))

    def target_dir(self, name: str) -> Path:
        return self.cores_dir / source_dirname(name)

    def ensure_all(self, recipes: Mapping[str, CoreRecipe]) -> dict[str, FetchResult]:
        self.logger.section("Fetching Sources")
        self.logger.info(f"Cores directory: {self.cores_dir}")
        self.cores_dir.mkdir(parents=True, exist_ok=True)
        self.cache.root.mkdir(parents=True, exist_ok=True)
        self.counters.reset()

        results: dict[str, FetchResult] = {}
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="fetch") as pool:
            futures = {
                pool.submit(self.ensure, name, recipe): name for name, recipe in recipes.items()
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        counts = self.counters.snapshot()
        self.logger.success(
            f"Fetched: {counts['fetched']}, Skipped: {counts['skipped']}, Failed: {counts['failed']}",
            phase="fetch",
            extra=counts,
        )
        return {name: results[name] for name in recipes}

    def ensure(self, name: str, recipe: CoreRecipe) -> FetchResult:
        target = self.target_dir(name)
        try:
            repo, ref = _coordinates(name, recipe)
            if target.exists():
                self._report_stale(name, target, ref)
                self.logger.step(f"Skipping {name} (already exists)", phase="fetch", core=name)
                self.counters.increment(FetchStatus.SKIPPED.value)
                return FetchResult(core=name, status=FetchStatus.SKIPPED, path=target)

            strategy = choose_strategy(ref, submodules=recipe.submodules)
            self.logger.step(
                f"Fetching {name} from {repo}@{ref} ({strategy.value})",
                phase="fetch",
                core=name,
            )
            self._materialize(strategy, repo=repo, ref=ref, target=target, submodules=recipe.submodules)
            (target / REVISION_MARKER).write_text(ref + "\n", encoding="utf-8")
        except Exception as exc:  # noqa: BLE001
            self.logger.error(f"Failed to fetch {name}: {exc}", phase="fetch", core=name)
            self.counters.increment(FetchStatus.FAILED.value)
            return FetchResult(core=name, status=FetchStatus.FAILED, path=target, reason=str(exc))

        self.counters.increment(FetchStatus.FETCHED.value)
        return FetchResult(core=name, status=FetchStatus.FETCHED, path=target, strategy=strategy)

    def _materialize(
        self,
        strategy: FetchStrategy,
        *,
        repo: str,
        ref: str,
        target: Path,
        submodules: bool,
    ) -> None:
        try:
            if strategy is FetchStrategy.ARCHIVE:
                archive = self.cache.ensure(archive_url(repo, ref, host=self.host), repo=repo, ref=ref)
                extract_archive(archive, target)
            elif strategy is FetchStrategy.SHALLOW_CLONE:
                shallow_clone(
                    git_url(repo, host=self.host), target, ref, submodules=submodules, runner=self.runner
                )
            else:
                full_clone(
                    git_url(repo, host=self.host), target, ref, submodules=submodules, runner=self.runner
                )
        except BaseException:
            # A half-populated tree would be skipped as "already fetched" next run.
            shutil.rmtree(target, ignore_errors=True)
            raise

    def _report_stale(self, name: str, target: Path, ref: str) -> None:
        marker = target / REVISION_MARKER
        if not marker.exists():
            return
        fetched = marker.read_text(encoding="utf-8").strip()
        if fetched != ref:
            self.logger.warn(
                f"{name}: source was fetched at {fetched} but the recipe pins {ref}; "
                f"delete {target} to refetch",
                phase="fetch",
                core=name,
            )


def _coordinates(name: str, recipe: CoreRecipe) -> tuple[str, str]:
    if not recipe.repo:
        raise AcquisitionError(f"Missing `repo` for {name}.", context={"core": name})
    if not recipe.ref:
        raise AcquisitionError(f"Missing `tag` or `commit` for {name}.", context={"core": name})
    return recipe.repo, recipe.ref
