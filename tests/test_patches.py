import shutil
import subprocess
from pathlib import Path

import pytest
from conftest import Call, FakeRunner, failing

from corecross.errors import PatchError
from corecross.patches import GIT_APPLY, GNU_PATCH, PatchApplier, PatchState, tool_for

PATCH = """\
--- a/hello.txt
+++ b/hello.txt
@@ -1 +1 @@
-hello
+hello patched
"""

SECOND_PATCH = """\
--- a/other.txt
+++ b/other.txt
@@ -1 +1 @@
-one
+two
"""


def test_missing_patch_directory_is_not_an_error(tmp_path: Path) -> None:
    runner = FakeRunner()
    applier = PatchApplier(tmp_path / "patches", runner=runner)

    assert applier.apply("core1", tmp_path) == []
    assert runner.calls == []


def test_patches_are_applied_in_sorted_order(tmp_path: Path) -> None:
    patches = tmp_path / "patches" / "core1"
    _write(patches / "0002-second.patch", SECOND_PATCH)
    _write(patches / "0001-first.patch", PATCH)
    _write(patches / "README.md", "not a patch")
    source = tmp_path / "src"
    source.mkdir()
    runner = FakeRunner()

    results = PatchApplier(tmp_path / "patches", runner=runner).apply("core1", source)

    assert [result.patch.name for result in results] == ["0001-first.patch", "0002-second.patch"]
    assert all(result.state is PatchState.APPLIED for result in results)
    applied = [call.argv for call in runner.calls if "--dry-run" not in call.argv]
    assert [argv[-1].rsplit("/", 1)[-1] for argv in applied] == ["0001-first.patch", "0002-second.patch"]
    assert all(call.cwd == source for call in runner.calls)


def test_reverse_applicable_patch_is_skipped(tmp_path: Path) -> None:
    _write(tmp_path / "patches" / "core1" / "fix.patch", PATCH)

    def on_call(call: Call) -> None:
        if "--dry-run" in call.argv and "--reverse" not in call.argv:
            raise failing(call.argv)

    runner = FakeRunner(on_call=on_call)
    results = PatchApplier(tmp_path / "patches", runner=runner).apply("core1", tmp_path)

    assert [result.state for result in results] == [PatchState.ALREADY_APPLIED]
    assert len(runner.calls) == 2


def test_conflicting_patch_fails_with_its_name(tmp_path: Path) -> None:
    _write(tmp_path / "patches" / "core1" / "0003-broken.patch", PATCH)
    runner = FakeRunner(on_call=_always_fail)

    with pytest.raises(PatchError, match="0003-broken.patch doesn't apply cleanly"):
        PatchApplier(tmp_path / "patches", runner=runner).apply("core1", tmp_path)


def test_tool_selection(tmp_path: Path) -> None:
    assert tool_for(tmp_path) is GNU_PATCH
    (tmp_path / ".git").mkdir()
    assert tool_for(tmp_path) is GIT_APPLY


@pytest.mark.skipif(shutil.which("patch") is None, reason="patch not installed")
def test_gnu_patch_application_is_idempotent(tmp_path: Path) -> None:
    _write(tmp_path / "patches" / "core1" / "0001-hello.patch", PATCH)
    source = tmp_path / "src"
    _write(source / "hello.txt", "hello\n")
    applier = PatchApplier(tmp_path / "patches")

    first = applier.apply("core1", source)
    second = applier.apply("core1", source)

    assert [result.state for result in first] == [PatchState.APPLIED]
    assert [result.state for result in second] == [PatchState.ALREADY_APPLIED]
    assert (source / "hello.txt").read_text(encoding="utf-8") == "hello patched\n"


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_git_apply_is_idempotent(tmp_path: Path) -> None:
    _write(tmp_path / "patches" / "core1" / "0001-hello.patch", PATCH)
    source = tmp_path / "src"
    _write(source / "hello.txt", "hello\n")
    subprocess.run(["git", "init", "--quiet"], cwd=source, check=True)
    applier = PatchApplier(tmp_path / "patches")

    applier.apply("core1", source)
    second = applier.apply("core1", source)

    assert [result.state for result in second] == [PatchState.ALREADY_APPLIED]
    assert (source / "hello.txt").read_text(encoding="utf-8") == "hello patched\n"


@pytest.mark.skipif(shutil.which("patch") is None, reason="patch not installed")
def test_patch_against_wrong_tree_fails(tmp_path: Path) -> None:
    _write(tmp_path / "patches" / "core1" / "0001-hello.patch", PATCH)
    source = tmp_path / "src"
    _write(source / "hello.txt", "something else entirely\n")

    with pytest.raises(PatchError):
        PatchApplier(tmp_path / "patches").apply("core1", source)

    assert (source / "hello.txt").read_text(encoding="utf-8") == "something else entirely\n"


def _always_fail(call: Call) -> None:
    raise failing(call.argv)


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
