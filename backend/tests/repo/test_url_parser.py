"""Tests for GitHub URL parsing."""

import pytest

from repowiki.repo.url_parser import parse_repo_url


class TestParseRepoUrl:
    """Tests for parse_repo_url function."""

    def test_https_url(self):
        result = parse_repo_url("https://github.com/facebook/react")

        assert result.owner == "facebook"
        assert result.repo == "react"
        assert result.canonical_url == "https://github.com/facebook/react"

    def test_https_url_with_git_suffix(self):
        result = parse_repo_url("https://github.com/facebook/react.git")

        assert result.repo == "react"

    def test_trailing_slash_and_whitespace(self):
        result = parse_repo_url("  https://github.com/facebook/react/  ")

        assert result.full_name == "facebook/react"

    def test_url_without_scheme(self):
        result = parse_repo_url("github.com/pallets/flask")

        assert result.canonical_url == "https://github.com/pallets/flask"

    def test_ssh_url(self):
        result = parse_repo_url("git@github.com:pallets/flask.git")

        assert result.owner == "pallets"
        assert result.repo == "flask"

    def test_same_repository_has_same_canonical_url(self):
        urls = [
            "https://github.com/o/r",
            "https://github.com/o/r.git",
            "https://github.com/o/r/",
            "git@github.com:o/r.git",
        ]

        assert {parse_repo_url(u).canonical_url for u in urls} == {"https://github.com/o/r"}

    def test_canonical_url_is_case_insensitive(self):
        result = parse_repo_url("https://github.com/Facebook/React")

        assert result.full_name == "Facebook/React"
        assert result.canonical_url == "https://github.com/facebook/react"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "https://gitlab.com/o/r",
            "https://github.com/only-owner",
            "https://github.com/o/r/tree/main/src",
            "/local/path/to/repo",
            "https://github.com/../r",
        ],
    )
    def test_invalid_urls_raise(self, url: str):
        with pytest.raises(ValueError, match="Invalid GitHub repository URL"):
            parse_repo_url(url)
