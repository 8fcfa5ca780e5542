"""Subsystem analyzer tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from repowiki.generation.analyzer import (
    SubsystemAnalysisError,
    SubsystemAnalyzer,
    build_outline,
    is_key_file,
    normalize_path,
)
from repowiki.generation.schemas import ClassificationResponse
from repowiki.llm.client import LLMMalformedResponseError, LLMRateLimitError
from repowiki.repo.github import GitHubUnavailableError

FILES = ["README.md", "pyproject.toml", "src/demo/cli.py", "src/demo/api.py", "src/demo/db.py"]


def classification(*subsystems: dict, summary: str = "A demo project.") -> ClassificationResponse:
    return ClassificationResponse.model_validate({"summary": summary, "subsystems": subsystems})


def subsystem_data(name: str, files: list[str], entry_points: list[str] | None = None) -> dict:
    return {
        "name": name,
        "description": f"{name} subsystem",
        "type": "feature",
        "files": files,
        "entryPoints": entry_points or [],
        "dependencies": ["click"],
        "complexity": "low",
    }


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.complete = AsyncMock(
        return_value=classification(
            subsystem_data("CLI", ["src/demo/cli.py"], ["src/demo/cli.py"]),
            subsystem_data("API", ["src/demo/api.py"]),
            subsystem_data("Storage", ["src/demo/db.py"]),
        )
    )
    return llm


class TestHelpers:
    def test_normalize_path(self):
        assert normalize_path("./src/a.py") == "src/a.py"
        assert normalize_path("/src/a.py") == "src/a.py"
        assert normalize_path(" src/a.py ") == "src/a.py"

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("README.md", True),
            ("docs/README.md", True),
            ("deep/nested/pkg/package.json", True),
            ("deep/nested/pkg/main.py", True),
            ("src/config/settings.py", True),
            ("src/lib.rs", True),
            ("deep/nested/pkg/Readme.md", True),
            ("deep/nested/pkg/DOCKERFILE", True),
            ("deep/nested/Config/routes.py", True),
            ("src/demo/cli.py", False),
        ],
    )
    def test_is_key_file(self, path: str, expected: bool):
        assert is_key_file(path) is expected

    def test_outline_groups_by_directory(self):
        outline = build_outline(FILES, max_files=500)

        assert outline.startswith("## Repository File Structure")
        assert "(root)/\n  README.md\n  pyproject.toml" in outline
        assert "src/demo/\n  api.py\n  cli.py\n  db.py" in outline
        assert "showing the first" not in outline

    def test_outline_notes_omitted_files(self):
        outline = build_outline(FILES, max_files=2)

        assert "(showing the first 2 of 5 files)" in outline
        assert "cli.py" not in outline


async def test_analyze_returns_validated_subsystems(fake_source, mock_llm):
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    result = await analyzer.analyze("o", "r", FILES)

    assert result.summary == "A demo project."
    assert [s.name for s in result.subsystems] == ["CLI", "API", "Storage"]
    assert result.subsystems[0].entry_points == ["src/demo/cli.py"]
    assert result.warnings == []


async def test_prompt_carries_outline_and_key_file_excerpts(fake_source, mock_llm):
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    await analyzer.analyze("o", "r", FILES)

    prompt = mock_llm.complete.call_args.args[0]
    assert "src/demo/" in prompt
    assert "A demo project." in prompt
    assert mock_llm.complete.call_args.kwargs["response_model"] is ClassificationResponse
    assert fake_source.reads == ["README.md", "pyproject.toml"]


async def test_hallucinated_paths_are_dropped_with_warnings(fake_source, mock_llm):
    mock_llm.complete.return_value = classification(
        subsystem_data(
            "CLI",
            ["src/demo/cli.py", "src/demo/ghost.py", "./src/demo/cli.py"],
            ["src/imaginary/main.py"],
        ),
    )
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    result = await analyzer.analyze("o", "r", FILES)

    cli = result.subsystems[0]
    assert cli.files == ["src/demo/cli.py"]
    assert cli.entry_points == []
    assert cli.dependencies == ["click"]
    assert len(result.warnings) == 2
    assert any("src/demo/ghost.py" in w for w in result.warnings)
    assert any("src/imaginary/main.py" in w for w in result.warnings)


async def test_duplicate_names_first_wins(fake_source, mock_llm):
    mock_llm.complete.return_value = classification(
        subsystem_data("CLI", ["src/demo/cli.py"]),
        subsystem_data("CLI", ["src/demo/api.py"]),
    )
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    result = await analyzer.analyze("o", "r", FILES)

    assert len(result.subsystems) == 1
    assert result.subsystems[0].files == ["src/demo/cli.py"]
    assert "Duplicate subsystem 'CLI'" in result.warnings[0]


async def test_large_key_files_are_skipped_and_excerpts_truncated(make_source, mock_llm):
    source = make_source(
        files={"README.md": "x" * 6000, "pyproject.toml": "y" * 3000, "src/a.py": "pass\n"}
    )
    analyzer = SubsystemAnalyzer(
        source, mock_llm, key_file_max_chars=5000, key_file_excerpt_chars=2000
    )

    await analyzer.analyze("o", "r", ["README.md", "pyproject.toml", "src/a.py"])

    prompt = mock_llm.complete.call_args.args[0]
    assert "x" * 100 not in prompt
    assert "y" * 2000 in prompt
    assert "y" * 2001 not in prompt


async def test_key_file_limits(make_source, mock_llm):
    files = {f"pkg{i}/main.py": "print(1)\n" for i in range(6)}
    source = make_source(files=files)
    analyzer = SubsystemAnalyzer(source, mock_llm, key_file_scan_limit=4, max_key_files=3)

    await analyzer.analyze("o", "r", list(files))

    assert source.reads == ["pkg0/main.py", "pkg1/main.py", "pkg2/main.py"]


async def test_key_file_fetch_failure_is_skipped(make_source, mock_llm):
    source = make_source(
        files={"pyproject.toml": "[project]\n"},
        failing={"README.md": GitHubUnavailableError("boom")},
    )
    analyzer = SubsystemAnalyzer(source, mock_llm)

    result = await analyzer.analyze("o", "r", ["README.md", "pyproject.toml"])

    assert source.reads == ["README.md", "pyproject.toml"]
    assert result.subsystems


async def test_malformed_response_raises(fake_source, mock_llm):
    mock_llm.complete.side_effect = LLMMalformedResponseError("bad json", raw_response="{")
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    with pytest.raises(SubsystemAnalysisError, match="Malformed analysis response"):
        await analyzer.analyze("o", "r", FILES)


async def test_empty_subsystem_list_raises(fake_source, mock_llm):
    mock_llm.complete.return_value = classification()
    analyzer = SubsystemAnalyzer(fake_source, mock_llm)

    with pytest.raises(SubsystemAnalysisError, match="no subsystems"):
        await analyzer.analyze("o", "r", FILES)


async def test_placeholder_used_when_enabled(fake_source, mock_llm):
    mock_llm.complete.side_effect = LLMMalformedResponseError("bad json", raw_response="{")
    analyzer = SubsystemAnalyzer(fake_source, mock_llm, placeholder_fallback=True)

    result = await analyzer.analyze("o", "r", FILES)

    assert [s.name for s in result.subsystems] == ["Core"]
    assert result.subsystems[0].files == FILES
    assert result.warnings


async def test_transport_errors_propagate(fake_source, mock_llm):
    mock_llm.complete.side_effect = LLMRateLimitError("Rate limit exceeded")
    analyzer = SubsystemAnalyzer(fake_source, mock_llm, placeholder_fallback=True)

    with pytest.raises(LLMRateLimitError):
        await analyzer.analyze("o", "r", FILES)
