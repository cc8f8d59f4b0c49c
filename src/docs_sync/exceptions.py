from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DocsSyncError(Exception):
    """Base exception for errors that abort a documentation sync."""

    def __str__(self) -> str:
        return getattr(self, "message", self.__class__.__name__)


@dataclass(frozen=True)
class ConfigError(DocsSyncError):
    """Raised when a sync configuration file is missing or invalid."""

    path: Path
    message: str = "The sync configuration is invalid."

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class CloneError(DocsSyncError):
    """Raised when a git command fails while acquiring a repository."""

    command: str
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        detail = self.stderr.strip() or self.stdout.strip()
        return f"`{self.command}` exited with {self.returncode}: {detail}"


@dataclass(frozen=True)
class SourcePathNotFoundError(DocsSyncError):
    """Raised when the configured documentation folder is absent from the source."""

    folder: Path
    message: str = "Source path not found."

    def __str__(self) -> str:
        return f"{self.message} {self.folder}"


@dataclass(frozen=True)
class FetchError(DocsSyncError):
    """Raised when an HTTP fetch answers with a non-2xx status."""

    url: str
    status_code: int
    reason: str = ""

    def __str__(self) -> str:
        return f"Failed to fetch {self.url}: {self.status_code} {self.reason}".rstrip()


@dataclass(frozen=True)
class ManifestWriteError(DocsSyncError):
    """Raised when ``manifest.json`` cannot be written after the documents were synced."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Could not write manifest {self.path}: {self.reason}"
