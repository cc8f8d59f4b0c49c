from __future__ import annotations

from enum import StrEnum, auto
from typing import TYPE_CHECKING, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from docs_sync.exceptions import ConfigError

if TYPE_CHECKING:
    from pathlib import Path


class AcquirerKind(StrEnum):
    """Where the raw documentation of a skill comes from."""

    REPOSITORY = auto()
    DIRECT = auto()
    HTML = auto()
    LLMS_TXT = auto()


DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".mdx")

DEFAULT_SKIP_DIRS: tuple[str, ...] = (
    ".git",
    ".cursor",
    "assets",
    "css",
    "public",
    "snippets",
    "node_modules",
)

DEFAULT_SKIP_FILES: tuple[str, ...] = (".ccignore",)

DEFAULT_CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    '[role="main"]',
    "main",
    ".content",
    ".documentation",
)

DEFAULT_REMOVE_SELECTORS: tuple[str, ...] = (
    "nav",
    "header",
    "footer",
    "script",
    "style",
    ".sidebar",
    ".navigation",
    '[role="navigation"]',
)


class DocPage(BaseModel):
    """One HTML page to scrape, with its output file and display title."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., description="Page URL")
    output_path: str = Field(..., description="Output path relative to the resources directory")
    title: str = Field(..., description="Title written to the front-matter")


class SyncConfig(BaseModel):
    """Immutable description of one documentation source.

    All acquirer kinds share this shape; only the fields relevant to ``kind``
    are read. Required fields per kind are checked at validation time:

    - ``repository``: ``source`` (clone URL) and ``source_path``.
    - ``direct``: ``source`` (base URL) and a non-empty ``paths``.
    - ``html``: a non-empty ``pages``.
    - ``llms_txt``: ``source`` (the llms.txt URL).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: AcquirerKind
    source: str = Field(default="", description="Repository URL, base URL or llms.txt URL")
    source_path: str = Field(default="", description="Docs folder inside the repository")
    base_doc_url: str = Field(default="", description="Base URL used for llms.txt source links")
    paths: tuple[str, ...] = Field(default=(), description="Paths fetched under the base URL")
    pages: tuple[DocPage, ...] = Field(default=(), description="HTML pages to scrape")
    strip_prefix: str = Field(default="", description="Prefix removed from logical paths")
    flatten: bool = Field(default=True, description="Flatten nested paths into dash-joined names")
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    skip_dirs: tuple[str, ...] = DEFAULT_SKIP_DIRS
    skip_files: tuple[str, ...] = DEFAULT_SKIP_FILES
    content_selectors: tuple[str, ...] = DEFAULT_CONTENT_SELECTORS
    remove_selectors: tuple[str, ...] = DEFAULT_REMOVE_SELECTORS
    resources_dir: str = Field(default="", description="Output directory, relative to the config file")

    @model_validator(mode="after")
    def _check_required_fields(self) -> Self:
        missing: list[str] = []
        if self.kind in {AcquirerKind.REPOSITORY, AcquirerKind.DIRECT, AcquirerKind.LLMS_TXT} and not self.source:
            missing.append("source")
        if self.kind is AcquirerKind.REPOSITORY and not self.source_path:
            missing.append("source_path")
        if self.kind is AcquirerKind.DIRECT and not self.paths:
            missing.append("paths")
        if self.kind is AcquirerKind.HTML and not self.pages:
            missing.append("pages")
        if missing:
            msg = f"{self.kind} sync requires: {', '.join(missing)}"
            raise ValueError(msg)
        return self

    @property
    def doc_base_url(self) -> str:
        """Base URL prepended to llms.txt section paths in source links."""
        if self.base_doc_url:
            return self.base_doc_url.rstrip("/")
        return self.source.rsplit("/", 1)[0]


def load_config(path: Path) -> SyncConfig:
    """Load and validate a YAML sync configuration.

    Args:
        path (Path): the YAML file to read

    Raises:
        ConfigError: if the file is missing, is not a YAML mapping or fails validation.

    Returns:
        SyncConfig: the validated configuration
    """
    if not path.is_file():
        raise ConfigError(path=path, message="Configuration file not found.")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(path=path, message=f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(path=path, message="Configuration must be a YAML mapping.")
    try:
        return SyncConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=path, message=str(e)) from e
