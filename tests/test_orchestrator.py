from pathlib import Path

import pytest
from conftest import Call, FakeRunner

from corecross.config import Settings
from corecross.errors import ConfigurationError
from corecross.fetch import FetchStatus
from corecross.models import BuildStatus
from corecross.orchestrator import Orchestrator

RECIPE = """\
---
config:
  arch: aarch64
  target_cross: aarch64-linux-gnu-
  target_cflags: "-O2"
  target_cxxflags: "-O2"
cores:
  gambatte:
    repo: libretro/gambatte-libretro
    tag: v1.0
    build_type: make
    build_dir: .
    makefile: Makefile
    so_file: gambatte_libretro.so
  mgba:
    repo: libretro/mgba
    tag: v2.0
    build_type: cmake
    so_file: build/mgba_libretro.so
  broken:
    repo: libretro/broken
    tag: v0.1
    build_type: make
    so_file: broken_libretro.so
"""


def test_run_fetches_then_builds(tmp_path: Path) -> None:
    runner = FakeRunner(on_call=_fake_tools)
    orchestrator = _orchestrator(tmp_path, runner)

    status = orchestrator.run()

    assert status == 0
    assert {name: r.status for name, r in orchestrator.fetch_results.items()} == {
        "gambatte": FetchStatus.FETCHED,
        "mgba": FetchStatus.FETCHED,
        "broken": FetchStatus.FETCHED,
    }
    assert orchestrator.executor is not None
    outcomes = orchestrator.executor.outcomes
    assert list(outcomes) == ["gambatte", "mgba", "broken"]
    assert outcomes["gambatte"].ok and outcomes["mgba"].ok
    assert outcomes["broken"].status is BuildStatus.FAILED
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["gambatte_libretro.so", "mgba_libretro.so"]


def test_malformed_recipe_fails_only_its_own_core(tmp_path: Path) -> None:
    recipe = RECIPE + (
        "  picodrive:\n"
        "    repo: libretro/picodrive\n"
        "    tag: v1.9\n"
        "    build_type: make\n"
        "    build_dir: .\n"
        "    makefile: Makefile\n"
        "    so_file: picodrive_libretro.so\n"
        "    extra_args: 5\n"
    )
    runner = FakeRunner(on_call=_fake_tools)
    orchestrator = _orchestrator(tmp_path, runner, recipe=recipe)

    assert orchestrator.run() == 0
    assert orchestrator.executor is not None
    outcomes = orchestrator.executor.outcomes
    assert outcomes["gambatte"].ok and outcomes["mgba"].ok
    assert outcomes["picodrive"].status is BuildStatus.FAILED
    assert "extra_args" in (outcomes["picodrive"].reason or "")
    assert not any(call.argv[0] == "make" and call.cwd is not None and "picodrive" in str(call.cwd) for call in runner.calls)


def test_skip_fetch_builds_existing_sources_only(tmp_path: Path) -> None:
    runner = FakeRunner(on_call=_fake_tools)
    orchestrator = _orchestrator(tmp_path, runner, skip_fetch=True)

    status = orchestrator.run()

    assert status == 1
    assert orchestrator.fetch_results == {}
    assert not any(call.argv[0] == "git" for call in runner.calls)


def test_skip_build_reports_fetch_status(tmp_path: Path) -> None:
    def on_call(call: Call) -> None:
        if "libretro/mgba" in " ".join(call.argv):
            raise ConnectionError("network down")
        _fake_tools(call)

    orchestrator = _orchestrator(tmp_path, FakeRunner(on_call=on_call), skip_build=True)

    assert orchestrator.run() == 1
    assert orchestrator.executor is None
    assert orchestrator.fetch_results["mgba"].status is FetchStatus.FAILED
    assert orchestrator.fetch_results["gambatte"].status is FetchStatus.FETCHED


def test_core_selection_restricts_both_phases(tmp_path: Path) -> None:
    runner = FakeRunner(on_call=_fake_tools)
    orchestrator = _orchestrator(tmp_path, runner, cores=["mgba"])

    assert orchestrator.run() == 0
    assert list(orchestrator.fetch_results) == ["mgba"]
    assert orchestrator.executor is not None
    assert orchestrator.executor.counters.snapshot() == {"built": 1, "failed": 0, "skipped": 2}


def test_unknown_core_selection_is_a_configuration_error(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path, FakeRunner(), cores=["nonexistent"])

    with pytest.raises(ConfigurationError, match="nonexistent"):
        orchestrator.run()


def test_profile_errors_abort_before_any_work(tmp_path: Path) -> None:
    recipe_file = tmp_path / "broken.yml"
    recipe_file.write_text("config:\n  arch: aarch64\ncores: {}\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="target_cross"):
        Orchestrator("broken", recipe_file=recipe_file, settings=Settings())


def test_default_directories_follow_family(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    recipes_dir = tmp_path / "recipes" / "linux"
    recipes_dir.mkdir(parents=True)
    (recipes_dir / "cortex-a53.yml").write_text(RECIPE, encoding="utf-8")

    orchestrator = Orchestrator("cortex-a53", settings=Settings(fetch_workers=3, jobs=5))

    root = tmp_path.resolve()
    assert orchestrator.cores_dir == root / "output" / "cores-cortex-a53"
    assert orchestrator.output_dir == root / "output" / "cortex-a53"
    assert orchestrator.cache_dir == root / "output" / "cache"
    assert orchestrator.fetch_workers == 3
    assert orchestrator.parallel == 5


def _orchestrator(tmp_path: Path, runner: FakeRunner, recipe: str = RECIPE, **kwargs: object) -> Orchestrator:
    recipe_file = tmp_path / "cortex-a53.yml"
    recipe_file.write_text(recipe, encoding="utf-8")
    return Orchestrator(
        "cortex-a53",
        recipe_file=recipe_file,
        cores_dir=tmp_path / "cores",
        cache_dir=tmp_path / "cache",
        output_dir=tmp_path / "out",
        patches_dir=tmp_path / "patches",
        scripts_dir=tmp_path / "scripts",
        settings=Settings(),
        runner=runner,
        **kwargs,  # type: ignore[arg-type]
    )


def _fake_tools(call: Call) -> None:
    """Clone creates a tree with a Makefile; make drops the core library."""
    if call.argv[:2] == ("git", "clone"):
        target = Path(call.argv[-1])
        target.mkdir(parents=True, exist_ok=True)
        (target / "Makefile").write_text("all:\n", encoding="utf-8")
    elif call.argv[0] == "make" and call.cwd is not None:
        core_dir = next(p for p in (call.cwd, *call.cwd.parents) if p.name.startswith("libretro-"))
        name = core_dir.name.removeprefix("libretro-")
        (call.cwd / f"{name}_libretro.so").write_bytes(b"\x7fELF")
