"""Source acquisition: archive cache, git clones and the worker pool."""

from .acquirer import FetchResult, FetchStatus, SourceAcquirer
from .archive import extract_archive
from .cache import ArchiveCache
from .git import FetchStrategy, choose_strategy

__all__ = [
    "ArchiveCache",
    "FetchResult",
    "FetchStatus",
    "FetchStrategy",
    "SourceAcquirer",
    "choose_strategy",
    "extract_archive",
]
