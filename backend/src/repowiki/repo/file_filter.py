"""Path-based relevance filtering for repository files."""

from collections.abc import Iterable
from pathlib import PurePosixPath

from repowiki.constants.files import (
    IGNORED_DIRECTORIES,
    RELEVANT_EXTENSIONS,
    RELEVANT_FILENAMES,
)


def is_relevant(path: str) -> bool:
    """Decide whether a repository path is worth analyzing.

    The deny-list is checked first: any path with a noise directory among its
    parents is rejected regardless of extension. Remaining paths are accepted
    only if their filename or extension is allow-listed. Matching is
    case-insensitive and uses the path string alone.

    Args:
        path: Repository-relative path using forward slashes.

    Returns:
        True if the file should be considered, False otherwise.
    """
    parts = [part for part in path.strip().lower().split("/") if part]
    if not parts:
        return False

    *directories, filename = parts
    if any(directory in IGNORED_DIRECTORIES for directory in directories):
        return False

    if filename in RELEVANT_FILENAMES:
        return True

    suffix = PurePosixPath(filename).suffix
    return suffix in RELEVANT_EXTENSIONS


def filter_relevant(paths: Iterable[str]) -> list[str]:
    """Keep relevant paths, preserving their original order."""
    return [path for path in paths if is_relevant(path)]


def group_files_by_directory(files: list[str]) -> dict[str, list[str]]:
    """Group file paths by their parent directory.

    Args:
        files: List of file paths.

    Returns:
        Mapping of directory path ("" for the root) to sorted filenames.
    """
    groups: dict[str, list[str]] = {}
    for file_path in files:
        directory, _, name = file_path.rpartition("/")
        groups.setdefault(directory, []).append(name)
    return {directory: sorted(names) for directory, names in sorted(groups.items())}
