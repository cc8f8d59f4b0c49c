"""Acquirers obtain the raw documentation of a skill from its upstream origin.

Each acquirer processes its items one after the other. A failure on a single
item is recorded in :attr:`Acquisition.failures` and the batch goes on; a
failure that leaves nothing to sync (clone error, missing docs folder,
unreachable ``llms.txt``) raises a :class:`~docs_sync.exceptions.DocsSyncError`.
"""

from __future__ import annotations

import os
import subprocess  # noqa: S404
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import requests

from docs_sync import __version__
from docs_sync.config import DEFAULT_EXTENSIONS, DEFAULT_SKIP_DIRS, DEFAULT_SKIP_FILES, AcquirerKind
from docs_sync.exceptions import CloneError, FetchError, SourcePathNotFoundError
from docs_sync.logging import logger
from docs_sync.models import Acquisition, ContentKind, FailedItem, SourceDocument

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docs_sync.config import DocPage, SyncConfig


def make_session() -> requests.Session:
    """Create the HTTP session shared by the fetches of one run."""
    session = requests.Session()
    session.headers["User-Agent"] = f"docs-sync/{__version__}"
    return session


def fetch_text(session: requests.Session, url: str) -> str:
    """Fetch ``url`` once and return the decoded body.

    Args:
        session (requests.Session): the HTTP session
        url (str): the URL to fetch

    Raises:
        FetchError: on a non-2xx status or a transport error (status 0).

    Returns:
        str: the response text
    """
    try:
        response = session.get(url)
    except requests.RequestException as e:
        raise FetchError(url=url, status_code=0, reason=str(e)) from e
    if not response.ok:
        raise FetchError(url=url, status_code=response.status_code, reason=response.reason or "")
    return decode_body(response)


def decode_body(response: requests.Response) -> str:
    """Decode a response body, trusting only an explicit charset.

    Without a charset in ``Content-Type``, requests falls back to ISO-8859-1
    for ``text/*``. The body is decoded as UTF-8 instead, then with the
    encoding detected by requests when it is not valid UTF-8.
    """
    if "charset=" in response.headers.get("Content-Type", "").lower():
        return response.text
    try:
        return response.content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return response.content.decode(response.apparent_encoding or "utf-8", errors="replace")


def join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def site_root(url: str) -> str:
    """Return ``scheme://host`` of ``url``."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}" if parts.netloc else url


class Acquirer(ABC):
    """Common interface of the acquisition strategies."""

    @abstractmethod
    def acquire(self) -> Acquisition:
        """Obtain the source documents."""


class RepositoryAcquirer(Acquirer):
    """Shallow-clone a git repository and collect the markdown files of one folder.

    The clone lives in a temporary directory private to the call to
    :meth:`acquire`; it is removed whether the call succeeds or raises.
    """

    def __init__(
        self,
        repo_url: str,
        source_path: str,
        *,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        skip_dirs: Sequence[str] = DEFAULT_SKIP_DIRS,
        skip_files: Sequence[str] = DEFAULT_SKIP_FILES,
        git_bin: str = "git",
    ) -> None:
        self.repo_url = repo_url
        self.source_path = source_path.strip("/")
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.skip_dirs = set(skip_dirs)
        self.skip_files = set(skip_files)
        self.git_bin = git_bin

    @property
    def source(self) -> str:
        """Repository URL without its ``.git`` suffix."""
        return self.repo_url.removesuffix(".git")

    def run_git(self, args: Sequence[str], cwd: Path | None = None) -> str:
        """Run a git command and return its stdout.

        Raises:
            CloneError: if git cannot be started or exits with a non-zero status.
        """
        command = [self.git_bin, *args]
        try:
            out = subprocess.run(  # noqa: S603
                command,
                cwd=str(cwd) if cwd else None,
                text=True,
                capture_output=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise CloneError(
                command=" ".join(command),
                returncode=e.returncode,
                stdout=e.stdout or "",
                stderr=e.stderr or "",
            ) from e
        except OSError as e:
            raise CloneError(command=" ".join(command), returncode=-1, stdout="", stderr=str(e)) from e
        return out.stdout

    def walk_docs(self, source_dir: Path) -> list[Path]:
        """Collect documentation files under ``source_dir``, pruning skipped folders."""
        results: list[Path] = []
        for root, dirs, files in os.walk(source_dir):
            dirs[:] = sorted(d for d in dirs if d not in self.skip_dirs)
            for f in sorted(files):
                if f in self.skip_files or not f.lower().endswith(self.extensions):
                    continue
                p = Path(root) / f
                if not p.is_symlink() and p.is_file():
                    results.append(p)
        return results

    def acquire(self) -> Acquisition:
        with tempfile.TemporaryDirectory(prefix="docs-sync-") as tmp:
            checkout = Path(tmp) / "repo"
            logger.info("cloning_repository", url=self.repo_url)
            self.run_git(["clone", "--depth", "1", self.repo_url, str(checkout)])
            commit = self.run_git(["rev-parse", "HEAD"], cwd=checkout).strip()
            logger.info("repository_cloned", url=self.repo_url, commit=commit)

            source_dir = checkout / self.source_path
            if not source_dir.is_dir():
                raise SourcePathNotFoundError(folder=Path(self.source_path))
            if not source_dir.resolve().is_relative_to(checkout.resolve()):
                raise SourcePathNotFoundError(
                    folder=Path(self.source_path),
                    message="Source path resolves outside the repository.",
                )

            acquisition = Acquisition(source=self.source, source_path=self.source_path, commit=commit)
            for path in self.walk_docs(source_dir):
                rel = path.relative_to(source_dir).as_posix()
                try:
                    content = path.read_text(encoding="utf-8", errors="replace")
                except OSError as e:
                    logger.warning("document_read_failed", path=rel, error=str(e))
                    acquisition.failures.append(FailedItem(logical_path=rel, error=str(e)))
                    continue
                acquisition.documents.append(
                    SourceDocument(
                        logical_path=rel,
                        raw_content=content,
                        kind=ContentKind.MARKDOWN,
                    ),
                )
        return acquisition


class DirectFetchAcquirer(Acquirer):
    """Fetch a fixed list of raw markdown files below a base URL."""

    def __init__(self, base_url: str, paths: Sequence[str], *, session: requests.Session) -> None:
        self.base_url = base_url.rstrip("/")
        self.paths = list(paths)
        self.session = session

    def acquire(self) -> Acquisition:
        acquisition = Acquisition(source=self.base_url, track_hashes=True)
        for path in self.paths:
            url = join_url(self.base_url, path)
            logger.info("fetching_document", url=url)
            try:
                content = fetch_text(self.session, url)
            except FetchError as e:
                logger.warning("document_fetch_failed", url=url, status_code=e.status_code, error=str(e))
                acquisition.failures.append(FailedItem(logical_path=path, error=str(e)))
                continue
            acquisition.documents.append(
                SourceDocument(logical_path=path, raw_content=content, kind=ContentKind.MARKDOWN, source_url=url),
            )
        return acquisition


class HtmlScrapeAcquirer(Acquirer):
    """Fetch a fixed list of HTML pages; conversion to markdown is left to the pipeline."""

    def __init__(self, pages: Sequence[DocPage], *, session: requests.Session, source: str = "") -> None:
        self.pages = list(pages)
        self.session = session
        self.source = source or site_root(self.pages[0].url if self.pages else "")

    def acquire(self) -> Acquisition:
        acquisition = Acquisition(source=self.source)
        for page in self.pages:
            logger.info("fetching_page", url=page.url)
            try:
                html = fetch_text(self.session, page.url)
            except FetchError as e:
                logger.warning("page_fetch_failed", url=page.url, status_code=e.status_code, error=str(e))
                acquisition.failures.append(
                    FailedItem(logical_path=page.output_path, title=page.title, error=str(e)),
                )
                continue
            acquisition.documents.append(
                SourceDocument(
                    logical_path=page.output_path,
                    raw_content=html,
                    kind=ContentKind.HTML,
                    source_url=page.url,
                    title=page.title,
                ),
            )
        return acquisition


class LlmsTxtAcquirer(Acquirer):
    """Fetch a site's ``llms.txt``; the pipeline splits it into pages.

    The whole sync depends on this single download, so a failed fetch is fatal.
    """

    def __init__(self, url: str, *, session: requests.Session) -> None:
        self.url = url
        self.session = session

    def acquire(self) -> Acquisition:
        logger.info("fetching_llms_txt", url=self.url)
        blob = fetch_text(self.session, self.url)
        document = SourceDocument(
            logical_path=self.url.rsplit("/", 1)[-1] or "llms.txt",
            raw_content=blob,
            kind=ContentKind.LLMS_TXT,
            source_url=self.url,
        )
        return Acquisition(source=self.url, documents=[document])


def build_acquirer(config: SyncConfig, *, session: requests.Session | None = None) -> Acquirer:
    """Create the acquirer matching ``config.kind``.

    Args:
        config (SyncConfig): the sync configuration
        session (requests.Session | None): HTTP session for URL-based acquirers;
            a fresh one is created when omitted

    Returns:
        Acquirer: the configured acquirer
    """
    if config.kind is AcquirerKind.REPOSITORY:
        return RepositoryAcquirer(
            config.source,
            config.source_path,
            extensions=config.extensions,
            skip_dirs=config.skip_dirs,
            skip_files=config.skip_files,
        )
    http = session if session is not None else make_session()
    if config.kind is AcquirerKind.DIRECT:
        return DirectFetchAcquirer(config.source, config.paths, session=http)
    if config.kind is AcquirerKind.HTML:
        return HtmlScrapeAcquirer(config.pages, session=http, source=config.source)
    return LlmsTxtAcquirer(config.source, session=http)
