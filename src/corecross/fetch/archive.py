"""Source archive extraction."""

from __future__ import annotations

import os
import tarfile
from pathlib import Path

from corecross.errors import AcquisitionError


def extract_archive(archive: Path, target_dir: Path, *, strip_components: int = 1) -> None:
    """Extract a ``.tar.gz`` into ``target_dir``, dropping leading path parts.

    Forge archives wrap everything in a single ``<repo>-<ref>/`` directory,
    which ``strip_components=1`` removes.
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    root = os.path.abspath(target_dir)
    try:
        with tarfile.open(archive, "r:gz") as tf:
            for member in tf.getmembers():
                if strip_components > 0:
                    parts = member.name.split("/", strip_components)
                    if len(parts) <= strip_components or not parts[-1]:
                        continue
                    member.name = parts[-1]
                    # Hardlink targets carry the same prefix.
                    if member.islnk() and member.linkname:
                        link_parts = member.linkname.split("/", strip_components)
                        if len(link_parts) > strip_components:
                            member.linkname = link_parts[-1]
                member.name = os.path.normpath(member.name)
                dest = os.path.abspath(os.path.join(root, member.name))
                if os.path.commonpath([root, dest]) != root:
                    raise AcquisitionError(
                        "Archive member escapes the target directory.",
                        context={"archive": str(archive), "member": member.name},
                    )
                tf.extract(member, root, filter="tar")
    except (tarfile.TarError, OSError) as exc:
        raise AcquisitionError(
            "Archive extraction failed.",
            hint="Delete the cached archive and fetch again.",
            context={"archive": str(archive), "reason": str(exc)},
        ) from exc
