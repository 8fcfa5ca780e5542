"""Prompt templates for subsystem analysis and wiki page generation."""

from dataclasses import dataclass
from typing import Any

from repowiki.constants.analysis import MAX_SUBSYSTEMS, MIN_SUBSYSTEMS
from repowiki.generation.schemas import COMPLEXITY_LEVELS, SUBSYSTEM_TYPES


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Args:
            **kwargs: Variables to substitute into the template.

        Returns:
            The rendered template string.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# Subsystem Classification
# =============================================================================

ANALYSIS_SYSTEM_PROMPT = f"""You are an expert software architect. You analyze a repository's
structure and key files and break it into subsystems that help a new developer
navigate the code.

Guidelines:
1. Identify between {MIN_SUBSYSTEMS} and {MAX_SUBSYSTEMS} subsystems.
2. Balance feature-oriented subsystems (what the product does) with technical
   ones (how it is built).
3. Only reference file paths that appear in the provided file structure.
4. Each subsystem type must be one of: {", ".join(SUBSYSTEM_TYPES)}.
5. Complexity must be one of: {", ".join(COMPLEXITY_LEVELS)}.

Respond with a JSON object of the form:
{{
  "summary": "One paragraph describing the repository",
  "subsystems": [
    {{
      "name": "Short subsystem name",
      "description": "What this subsystem does and why it exists",
      "type": "feature",
      "files": ["path/from/the/file/structure.py"],
      "entryPoints": ["path/to/main/entry.py"],
      "dependencies": ["external-package-name"],
      "complexity": "medium"
    }}
  ]
}}"""

ANALYSIS_TEMPLATE = PromptTemplate(
    """Analyze the GitHub repository "{owner}/{repo}".

{outline}

## Key Files
{key_files}

Identify the subsystems of this repository."""
)

KEY_FILE_TEMPLATE = PromptTemplate(
    """### {path}
```
{content}
```
"""
)


# =============================================================================
# Wiki Page
# =============================================================================

WIKI_SYSTEM_PROMPT = """You are a technical writer producing a wiki page for one subsystem
of a codebase. Write for developers who are new to the project.

Guidelines:
1. Only describe behavior that is visible in the provided source files.
2. Structure the page with markdown headings (##, ###).
3. Support every important claim with an inline citation marker like [1], [2]
   that refers to an entry in the citations array.
4. Citations must reference one of the provided files and use the line numbers
   shown in the left margin of that file.
5. List every heading of the page in the table of contents.

Respond with a JSON object of the form:
{
  "title": "Page title",
  "content": "Markdown body with citation markers such as [1]",
  "citations": [
    {
      "text": "The claim or code being cited",
      "file": "path/to/file.py",
      "startLine": 10,
      "endLine": 24,
      "context": "Why this location supports the claim"
    }
  ],
  "tableOfContents": [
    {"title": "Overview", "anchor": "overview", "level": 2}
  ]
}"""

WIKI_TEMPLATE = PromptTemplate(
    """Write the wiki page for the "{name}" subsystem of {owner}/{repo}.

## Subsystem
- Name: {name}
- Type: {type}
- Complexity: {complexity}
- Description: {description}
- Entry points: {entry_points}
- Dependencies: {dependencies}

## Source Files
{files}"""
)

WIKI_FILE_TEMPLATE = PromptTemplate(
    """### {path} ({line_count} lines)
Summary: {summary}
```
{numbered_content}
```
"""
)


def number_lines(content: str) -> str:
    """Prefix each line with its 1-based line number."""
    lines = content.splitlines()
    width = len(str(len(lines))) if lines else 1
    return "\n".join(f"{i:>{width}} | {line}" for i, line in enumerate(lines, start=1))


def get_analysis_prompt(
    owner: str, repo: str, outline: str, key_files: list[tuple[str, str]]
) -> str:
    """Build the classification prompt.

    Args:
        owner: Repository owner.
        repo: Repository name.
        outline: Rendered project outline.
        key_files: (path, excerpt) pairs.

    Returns:
        Rendered user prompt.
    """
    if key_files:
        rendered = "\n".join(
            KEY_FILE_TEMPLATE.render(path=path, content=content) for path, content in key_files
        )
    else:
        rendered = "(no key files could be read)"
    return ANALYSIS_TEMPLATE.render(owner=owner, repo=repo, outline=outline, key_files=rendered)


def get_wiki_prompt(
    owner: str,
    repo: str,
    name: str,
    description: str,
    type: str,
    complexity: str,
    entry_points: list[str],
    dependencies: list[str],
    files: list[tuple[str, str, int, str]],
) -> str:
    """Build the wiki page prompt.

    Args:
        files: (path, excerpt, line_count, summary) tuples for gathered files.

    Returns:
        Rendered user prompt.
    """
    rendered_files = "\n".join(
        WIKI_FILE_TEMPLATE.render(
            path=path,
            line_count=line_count,
            summary=summary,
            numbered_content=number_lines(excerpt),
        )
        for path, excerpt, line_count, summary in files
    )
    return WIKI_TEMPLATE.render(
        owner=owner,
        repo=repo,
        name=name,
        description=description,
        type=type,
        complexity=complexity,
        entry_points=", ".join(entry_points) or "none",
        dependencies=", ".join(dependencies) or "none",
        files=rendered_files,
    )
