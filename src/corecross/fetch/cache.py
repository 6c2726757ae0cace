"""Shared archive cache keyed by repository coordinates and revision."""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.request import urlopen

from corecross.errors import AcquisitionError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


class ArchiveCache:
    """Downloaded source archives shared across CPU targets and runs.

    Entries live at ``<root>/<org>/<name>/<ref>.tar.gz`` next to a ``.sha256``
    sidecar written once the download is complete. Concurrent workers asking
    for the same entry are serialized on a per-entry lock; different entries
    download in parallel.
    """

    def __init__(self, root: str | Path, *, timeout: float = 60.0) -> None:
        self.root = Path(root)
        self.timeout = timeout
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, repo: str, ref: str) -> Path:
        parts = [part for part in repo.strip("/").split("/") if part not in ("", ".", "..")]
        if not parts:
            raise AcquisitionError("Repository coordinates are empty.", context={"repo": repo})
        return self.root.joinpath(*parts) / f"{ref.replace('/', '_')}.tar.gz"

    @contextmanager
    def locked(self, path: Path) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(path, threading.Lock())
        with lock:
            yield

    def ensure(self, url: str, *, repo: str, ref: str) -> Path:
        """Return a verified cached archive, downloading it on a miss."""
        archive = self.path_for(repo, ref)
        with self.locked(archive):
            if self.is_valid(archive):
                logger.debug("cache hit: %s", archive)
                return archive
            self._discard(archive)
            self._download(url, archive)
        return archive

    def is_valid(self, archive: Path) -> bool:
        sidecar = _sidecar(archive)
        if not archive.exists() or not sidecar.exists():
            return False
        expected = sidecar.read_text(encoding="utf-8").strip()
        actual = _file_sha256(archive)
        if actual != expected:
            logger.warning("Cached archive digest mismatch, refetching: %s", archive)
            return False
        return True

    def _download(self, url: str, archive: Path) -> None:
        archive.parent.mkdir(parents=True, exist_ok=True)
        temp_path = archive.with_name(f"{archive.name}.{threading.get_ident()}.tmp")
        digest = hashlib.sha256()
        try:
            with urlopen(url, timeout=self.timeout) as response, temp_path.open("wb") as out:  # noqa: S310 - https/file URLs built from recipe coordinates
                while chunk := response.read(_CHUNK_SIZE):
                    digest.update(chunk)
                    out.write(chunk)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise AcquisitionError(
                "Archive download failed.",
                hint="Check network access and that the revision exists upstream.",
                context={"url": url, "reason": str(exc)},
            ) from exc
        os.replace(temp_path, archive)
        _sidecar(archive).write_text(digest.hexdigest() + "\n", encoding="utf-8")

    def _discard(self, archive: Path) -> None:
        archive.unlink(missing_ok=True)
        _sidecar(archive).unlink(missing_ok=True)


def _sidecar(archive: Path) -> Path:
    return archive.with_name(f"{archive.name}.sha256")


def _file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while chunk := handle.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()
