from __future__ import annotations

import hashlib
from enum import StrEnum, auto

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ContentKind(StrEnum):
    """Form of the raw content handed over by an acquirer."""

    MARKDOWN = auto()
    HTML = auto()
    LLMS_TXT = auto()


class SyncStatus(StrEnum):
    """Outcome of one document in a sync run."""

    CREATED = auto()
    UPDATED = auto()
    UNCHANGED = auto()
    SKIPPED = auto()


def short_hash(content: str) -> str:
    """Return the first 12 hex digits of the SHA-256 of ``content``."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:12]


class SourceDocument(BaseModel):
    """Raw material obtained by an acquirer, keyed by its logical path."""

    model_config = ConfigDict(frozen=True)

    logical_path: str
    raw_content: str
    kind: ContentKind = ContentKind.MARKDOWN
    source_url: str | None = None
    title: str | None = None


class OutputDocument(BaseModel):
    """A fully rendered document ready to be written under the resources directory."""

    model_config = ConfigDict(frozen=True)

    output_path: str
    content: str
    title: str

    @computed_field
    @property
    def size_bytes(self) -> int:
        """Size of the UTF-8 encoded content."""
        return len(self.content.encode("utf-8"))

    @computed_field
    @property
    def content_hash(self) -> str:
        """Short content hash used for change tracking."""
        return short_hash(self.content)


class SyncResult(BaseModel):
    """Per-document report line.

    ``status`` is advisory. ``skipped`` covers dry-run entries and per-item
    failures; the latter carry an ``error`` message.
    """

    model_config = ConfigDict(frozen=True)

    output_path: str
    title: str
    status: SyncStatus
    size_bytes: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class FailedItem(BaseModel):
    """A document the acquirer could not obtain."""

    model_config = ConfigDict(frozen=True)

    logical_path: str
    error: str
    title: str | None = None


class Acquisition(BaseModel):
    """What an acquirer hands to the pipeline.

    ``track_hashes`` asks the pipeline to record per-file content hashes in
    the manifest.
    """

    documents: list[SourceDocument] = Field(default_factory=list)
    failures: list[FailedItem] = Field(default_factory=list)
    source: str
    source_path: str | None = None
    commit: str | None = None
    track_hashes: bool = False


class Manifest(BaseModel):
    """Snapshot of one sync, serialized as ``manifest.json`` with camelCase keys."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    source: str
    source_path: str | None = None
    commit: str | None = None
    synced_at: str
    file_count: int
    files: list[str]
    hashes: dict[str, str] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"
