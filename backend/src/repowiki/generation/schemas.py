"""Pydantic models for structured LLM responses.

The LLM is asked for camelCase keys (startLine, entryPoints, ...) but snake_case
is accepted as well. Enum-like fields are normalized before validation so
"Backend" and " backend " both validate as "backend".
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

SubsystemType = Literal[
    "feature",
    "service",
    "utility",
    "infrastructure",
    "cli",
    "api",
    "frontend",
    "backend",
]
Complexity = Literal["low", "medium", "high"]

SUBSYSTEM_TYPES: tuple[str, ...] = SubsystemType.__args__  # type: ignore[attr-defined]
COMPLEXITY_LEVELS: tuple[str, ...] = Complexity.__args__  # type: ignore[attr-defined]


def _normalize_enum(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _string_list(value: Any) -> Any:
    """Drop non-string and blank entries from a list field."""
    if value is None:
        return []
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return value


class ClassifiedSubsystem(BaseModel):
    """One subsystem as returned by the classification prompt."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    description: str
    type: SubsystemType
    files: list[str] = Field(default_factory=list)
    entry_points: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("entry_points", "entryPoints"),
    )
    dependencies: list[str] = Field(default_factory=list)
    complexity: Complexity

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("type", "complexity", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        return _normalize_enum(value)

    @field_validator("files", "entry_points", "dependencies", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> Any:
        return _string_list(value)


class ClassificationResponse(BaseModel):
    """Full response of the classification prompt."""

    summary: str
    subsystems: list[ClassifiedSubsystem]


class Citation(BaseModel):
    """A documentation claim anchored to a file and line range."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    file: str = Field(min_length=1)
    start_line: int = Field(ge=0, validation_alias=AliasChoices("start_line", "startLine"))
    end_line: int = Field(ge=0, validation_alias=AliasChoices("end_line", "endLine"))
    url: str | None = None
    context: str = ""

    @model_validator(mode="after")
    def _order_range(self) -> "Citation":
        if self.start_line > self.end_line:
            self.start_line, self.end_line = self.end_line, self.start_line
        return self


class TableOfContentsItem(BaseModel):
    """A heading in a generated page."""

    title: str
    anchor: str
    level: int = Field(ge=1, le=6)


class WikiContent(BaseModel):
    """Full response of the wiki page prompt."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    content: str
    citations: list[Citation] = Field(default_factory=list)
    table_of_contents: list[TableOfContentsItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("table_of_contents", "tableOfContents"),
    )
