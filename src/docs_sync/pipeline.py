from __future__ import annotations

import os
import tempfile
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from docs_sync.acquirers import build_acquirer, join_url
from docs_sync.exceptions import ManifestWriteError
from docs_sync.html_conversion import convert_to_markdown, extract_content, extract_title, render_document
from docs_sync.llms_txt import parse_llms_txt
from docs_sync.logging import logger
from docs_sync.models import ContentKind, Manifest, OutputDocument, SyncResult, SyncStatus
from docs_sync.path_mapping import PathMapper

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    import requests

    from docs_sync.config import SyncConfig
    from docs_sync.models import SourceDocument

MANIFEST_NAME = "manifest.json"


def now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


class SyncPlan(BaseModel):
    """Everything a run would write, computed without touching the resources directory."""

    source: str
    source_path: str | None = None
    commit: str | None = None
    synced_at: str
    track_hashes: bool = False
    documents: list[OutputDocument] = Field(default_factory=list)
    failures: list[SyncResult] = Field(default_factory=list)

    def manifest(self, written: Sequence[OutputDocument]) -> Manifest:
        """Build the manifest listing ``written`` documents."""
        files = sorted(doc.output_path for doc in written)
        hashes = {doc.output_path: doc.content_hash for doc in written} if self.track_hashes else None
        return Manifest(
            source=self.source,
            source_path=self.source_path,
            commit=self.commit,
            synced_at=self.synced_at,
            file_count=len(files),
            files=files,
            hashes=dict(sorted(hashes.items())) if hashes is not None else None,
        )


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` through a temporary file renamed into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def summarize(results: Sequence[SyncResult]) -> dict[str, int]:
    """Count results per status, plus the number of failed items.

    Args:
        results (Sequence[SyncResult]): the results of a run

    Returns:
        dict[str, int]: a count for every status value and for ``failed``
    """
    counts = Counter(r.status.value for r in results)
    summary = {status.value: counts.get(status.value, 0) for status in SyncStatus}
    summary["failed"] = sum(1 for r in results if r.failed)
    return summary


class SyncPipeline:
    """Run one documentation sync into a resources directory.

    Acquire, transform (``llms.txt`` splitting, HTML extraction and
    conversion), map paths, then write every document and the manifest. In
    dry-run mode the same plan is computed and reported but nothing is
    written.
    """

    def __init__(
        self,
        resources_dir: Path,
        *,
        session: requests.Session | None = None,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        self.resources_dir = resources_dir
        self.session = session
        self.clock = clock

    def build_plan(self, config: SyncConfig) -> SyncPlan:
        """Acquire and render every document of ``config``.

        Raises:
            DocsSyncError: when acquisition fails as a whole.
        """
        acquisition = build_acquirer(config, session=self.session).acquire()
        mapper = PathMapper(strip_prefix=config.strip_prefix, flatten=config.flatten)
        plan = SyncPlan(
            source=acquisition.source,
            source_path=acquisition.source_path,
            commit=acquisition.commit,
            synced_at=self.clock(),
            track_hashes=acquisition.track_hashes,
        )
        for failure in acquisition.failures:
            plan.failures.append(
                SyncResult(
                    output_path=mapper.map(failure.logical_path),
                    title=failure.title or extract_title("", failure.logical_path),
                    status=SyncStatus.SKIPPED,
                    error=failure.error,
                ),
            )

        outputs: dict[str, OutputDocument] = {}
        for doc in acquisition.documents:
            try:
                rendered = list(self.render(doc, config, synced_at=plan.synced_at))
            except Exception as e:  # noqa: BLE001
                logger.warning("document_conversion_failed", path=doc.logical_path, error=str(e))
                plan.failures.append(
                    SyncResult(
                        output_path=mapper.map(doc.logical_path),
                        title=doc.title or extract_title("", doc.logical_path),
                        status=SyncStatus.SKIPPED,
                        error=f"conversion failed: {e}",
                    ),
                )
                continue
            for logical_path, title, content in rendered:
                output_path = mapper.map(logical_path)
                if output_path in outputs:
                    logger.warning("output_path_collision", output_path=output_path, logical_path=logical_path)
                outputs[output_path] = OutputDocument(output_path=output_path, content=content, title=title)

        plan.documents = list(outputs.values())
        logger.info(
            "sync_planned",
            source=plan.source,
            documents=len(plan.documents),
            failures=len(plan.failures),
        )
        return plan

    def render(self, doc: SourceDocument, config: SyncConfig, *, synced_at: str) -> Iterator[tuple[str, str, str]]:
        """Turn one source document into ``(logical_path, title, content)`` triples.

        ``llms.txt`` blobs yield one triple per section; other documents yield one.
        """
        if doc.kind is ContentKind.LLMS_TXT:
            sections = parse_llms_txt(doc.raw_content)
            logger.info("llms_txt_parsed", url=doc.source_url, sections=len(sections))
            for path, body in sections.items():
                header = {"source": join_url(config.doc_base_url, path)}
                yield path, extract_title(body, path), render_document(body, header)
        elif doc.kind is ContentKind.HTML:
            root = extract_content(doc.raw_content, config.content_selectors, config.remove_selectors)
            markdown = convert_to_markdown(root)
            title = doc.title or extract_title(markdown, doc.logical_path)
            header = {"title": title, "source": doc.source_url or "", "synced": synced_at}
            yield doc.logical_path, title, render_document(markdown, header)
        else:
            yield doc.logical_path, extract_title(doc.raw_content, doc.logical_path), doc.raw_content

    def target_path(self, output_path: str) -> Path:
        """Resolve ``output_path`` under the resources directory.

        Raises:
            ValueError: if the path escapes the resources directory.
        """
        root = self.resources_dir.resolve()
        target = (root / output_path).resolve()
        if not target.is_relative_to(root) or target == root:
            msg = f"output path escapes the resources directory: {output_path}"
            raise ValueError(msg)
        return target

    def write_document(self, doc: OutputDocument) -> SyncResult:
        """Write one document; a failure is reported, never raised."""
        try:
            target = self.target_path(doc.output_path)
            if not target.exists():
                status = SyncStatus.CREATED
            elif target.read_text(encoding="utf-8", errors="replace") == doc.content:
                status = SyncStatus.UNCHANGED
            else:
                status = SyncStatus.UPDATED
            atomic_write_text(target, doc.content)
        except (OSError, ValueError) as e:
            logger.warning("document_write_failed", output_path=doc.output_path, error=str(e))
            return SyncResult(
                output_path=doc.output_path,
                title=doc.title,
                status=SyncStatus.SKIPPED,
                size_bytes=doc.size_bytes,
                error=str(e),
            )
        logger.info("document_written", output_path=doc.output_path, status=status.value, size=doc.size_bytes)
        return SyncResult(output_path=doc.output_path, title=doc.title, status=status, size_bytes=doc.size_bytes)

    def write_manifest(self, manifest: Manifest) -> Path:
        """Write ``manifest.json`` into the resources directory.

        Raises:
            ManifestWriteError: if the file cannot be written.
        """
        path = self.resources_dir / MANIFEST_NAME
        try:
            atomic_write_text(path, manifest.to_json())
        except OSError as e:
            raise ManifestWriteError(path=path, reason=str(e)) from e
        logger.info("manifest_written", path=str(path), file_count=manifest.file_count)
        return path

    def run(self, config: SyncConfig, *, dry_run: bool = False) -> list[SyncResult]:
        """Sync ``config`` into the resources directory.

        Args:
            config (SyncConfig): the documentation source
            dry_run (bool): compute and report the plan without writing anything

        Raises:
            DocsSyncError: when acquisition fails as a whole or the manifest cannot be written.

        Returns:
            list[SyncResult]: one result per planned document, followed by per-item failures
        """
        plan = self.build_plan(config)

        if dry_run:
            results = []
            for doc in plan.documents:
                logger.info("dry_run_would_write", output_path=doc.output_path, title=doc.title, size=doc.size_bytes)
                results.append(
                    SyncResult(
                        output_path=doc.output_path,
                        title=doc.title,
                        status=SyncStatus.SKIPPED,
                        size_bytes=doc.size_bytes,
                    ),
                )
            logger.info("dry_run_would_write_manifest", file_count=len(plan.documents))
            return results + plan.failures

        results = [self.write_document(doc) for doc in plan.documents]
        written_paths = {r.output_path for r in results if not r.failed}
        written = [doc for doc in plan.documents if doc.output_path in written_paths]
        if written:
            self.write_manifest(plan.manifest(written))
        else:
            logger.warning("manifest_not_written", reason="no document was written", source=plan.source)
        return results + plan.failures
