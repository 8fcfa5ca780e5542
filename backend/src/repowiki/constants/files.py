"""File relevance configuration.

These lists decide which repository paths are considered during analysis.
A path is rejected outright if any of its directories is a noise directory;
otherwise it must match the filename or extension allow-list.
"""

# =============================================================================
# Noise Directories
# =============================================================================
# Dependency caches, build output, editor metadata and version control.
# Matched case-insensitively against every directory component of a path.

IGNORED_DIRECTORIES = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "__pycache__",
        ".next",
        ".nuxt",
        "vendor",
        "target",
        "bin",
        "obj",
        ".vscode",
        ".idea",
        "coverage",
        ".nyc_output",
    }
)

# =============================================================================
# Allow-lists
# =============================================================================
# RELEVANT_EXTENSIONS covers common source, manifest, markup and documentation
# types. RELEVANT_FILENAMES covers manifests and build files that have no
# extension or whose extension is not in the list. Both are lower-case.

RELEVANT_EXTENSIONS = frozenset(
    {
        ".js",
        ".jsx",
        ".ts",
        ".tsx",
        ".py",
        ".java",
        ".cpp",
        ".c",
        ".h",
        ".go",
        ".rs",
        ".rb",
        ".php",
        ".cs",
        ".swift",
        ".kt",
        ".scala",
        ".vue",
        ".svelte",
        ".html",
        ".css",
        ".scss",
        ".sass",
        ".less",
        ".json",
        ".yaml",
        ".yml",
        ".toml",
        ".md",
        ".txt",
        ".sh",
        ".bash",
        ".dockerfile",
    }
)

RELEVANT_FILENAMES = frozenset(
    {
        "readme.md",
        "package.json",
        "requirements.txt",
        "cargo.toml",
        "pom.xml",
        "build.gradle",
        "cmakelists.txt",
        "makefile",
        "setup.py",
        "composer.json",
        "gemfile",
        "go.mod",
        "pyproject.toml",
        "dockerfile",
        ".env.example",
        ".gitignore",
    }
)
