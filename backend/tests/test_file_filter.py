"""File relevance filter tests."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from repowiki.constants.files import IGNORED_DIRECTORIES
from repowiki.repo.file_filter import filter_relevant, group_files_by_directory, is_relevant


def test_noise_directory_rejected_even_with_allowed_extension():
    """Files under node_modules are rejected although .js is allowed."""
    assert is_relevant("node_modules/pkg/index.js") is False
    assert is_relevant("src/index.js") is True


@pytest.mark.parametrize(
    "path",
    [
        ".git/config",
        "dist/bundle.js",
        "build/output.py",
        "src/__pycache__/mod.py",
        "web/.next/server/page.js",
        "vendor/lib/lib.go",
        "target/debug/main.rs",
        "coverage/lcov.json",
        "app/.nyc_output/out.json",
        "Project/bin/Debug/app.cs",
    ],
)
def test_noise_directories_rejected(path: str):
    """Build output, caches and VCS metadata are always rejected."""
    assert is_relevant(path) is False


@pytest.mark.parametrize(
    "path",
    [
        "README.md",
        "docs/guide.md",
        "src/app.tsx",
        "lib/core.py",
        "cmd/server/main.go",
        "Makefile",
        "Dockerfile",
        "backend/requirements.txt",
        "go.mod",
        "config/settings.yaml",
        ".gitignore",
        "web/.gitignore",
    ],
)
def test_allowed_paths_accepted(path: str):
    """Source, manifest and documentation files are accepted."""
    assert is_relevant(path) is True


@pytest.mark.parametrize(
    "path",
    ["assets/logo.png", "data/dump.sqlite", "bin.exe", "LICENSE", "archive.tar.gz", ""],
)
def test_unknown_types_rejected(path: str):
    """Anything not explicitly allowed is rejected."""
    assert is_relevant(path) is False


def test_matching_is_case_insensitive():
    """Extensions, filenames and directories match regardless of case."""
    assert is_relevant("src/Main.PY") is True
    assert is_relevant("MAKEFILE") is True
    assert is_relevant("Node_Modules/x.js") is False


def test_directory_named_like_allowed_file_not_confused():
    """A directory component that looks like a manifest does not make a path relevant."""
    assert is_relevant("package.json/blob.bin") is False


def test_filter_relevant_preserves_order():
    """filter_relevant keeps discovery order."""
    paths = ["z.py", "node_modules/a.js", "a.py", "img.png", "m.md"]

    assert filter_relevant(paths) == ["z.py", "a.py", "m.md"]


def test_group_files_by_directory():
    """Files are grouped under their parent directory, root as empty string."""
    groups = group_files_by_directory(["README.md", "src/b.py", "src/a.py", "docs/x.md"])

    assert groups == {"": ["README.md"], "docs": ["x.md"], "src": ["a.py", "b.py"]}
    assert list(groups) == ["", "docs", "src"]


path_segment = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-",
    min_size=1,
    max_size=12,
)


@given(st.lists(path_segment, min_size=1, max_size=6))
@settings(max_examples=100)
def test_is_relevant_is_deterministic(segments: list[str]):
    """The same path always yields the same answer."""
    path = "/".join(segments)

    assert is_relevant(path) == is_relevant(path)


@given(
    st.lists(path_segment, max_size=3),
    st.sampled_from(sorted(IGNORED_DIRECTORIES)),
    st.lists(path_segment, max_size=3),
    st.sampled_from(["index.js", "main.py", "README.md", "package.json"]),
)
@settings(max_examples=100)
def test_ignored_directory_anywhere_rejects(prefix, ignored, middle, filename):
    """A noise directory at any depth rejects the path."""
    path = "/".join([*prefix, ignored, *middle, filename])

    assert is_relevant(path) is False


@given(st.lists(st.sampled_from(["a.py", "b/c.ts", "node_modules/x.js", "d.png", "e.md"])))
@settings(max_examples=100)
def test_filter_relevant_is_idempotent(paths: list[str]):
    """Filtering an already filtered list changes nothing."""
    once = filter_relevant(paths)

    assert filter_relevant(once) == once
