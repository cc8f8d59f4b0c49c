from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from docs_sync.acquirers import (
    DirectFetchAcquirer,
    HtmlScrapeAcquirer,
    LlmsTxtAcquirer,
    RepositoryAcquirer,
    build_acquirer,
    fetch_text,
)
from docs_sync.config import DocPage, SyncConfig
from docs_sync.exceptions import CloneError, FetchError, SourcePathNotFoundError
from docs_sync.models import ContentKind

if TYPE_CHECKING:
    import requests
    from pytest_mock import MockerFixture

BASE = "https://docs.example.com"


def make_fake_git(  # noqa: ANN201
    layout: dict[str, str],
    commit: str = "abc123",
    clones: list[Path] | None = None,
    links: dict[str, Path] | None = None,
):
    def fake_git(args: list[str], cwd: Path | None = None) -> str:  # noqa: ARG001
        if args[0] == "clone":
            dest = Path(args[-1])
            dest.mkdir(parents=True)
            for rel, content in layout.items():
                path = dest / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            for rel, target in (links or {}).items():
                link = dest / rel
                link.parent.mkdir(parents=True, exist_ok=True)
                link.symlink_to(target)
            if clones is not None:
                clones.append(dest)
            return ""
        if args[0] == "rev-parse":
            return commit + "\n"
        raise AssertionError(args)

    return fake_git


@pytest.mark.unit
def test_fetch_text_raises_on_non_2xx(fake_session) -> None:  # noqa: ANN001
    session = fake_session({f"{BASE}/a.md": (500, "oops")})

    with pytest.raises(FetchError) as exc_info:
        fetch_text(session, f"{BASE}/a.md")

    assert exc_info.value.status_code == 500  # noqa: PLR2004
    assert f"{BASE}/a.md" in str(exc_info.value)


@pytest.mark.unit
def test_fetch_text_wraps_transport_errors(fake_session, connection_error: requests.ConnectionError) -> None:  # noqa: ANN001
    session = fake_session({f"{BASE}/a.md": connection_error})

    with pytest.raises(FetchError) as exc_info:
        fetch_text(session, f"{BASE}/a.md")

    assert exc_info.value.status_code == 0
    assert "connection refused" in exc_info.value.reason


@pytest.mark.unit
def test_fetch_text_decodes_utf8_when_no_charset_is_sent(fake_session, fake_response) -> None:  # noqa: ANN001
    body = "café — naïve"
    response = fake_response(body.encode("utf-8"), headers={"Content-Type": "text/plain"})
    session = fake_session({f"{BASE}/llms.txt": response})

    assert response.text != body
    assert fetch_text(session, f"{BASE}/llms.txt") == body


@pytest.mark.unit
def test_fetch_text_falls_back_to_detected_encoding(fake_session, fake_response) -> None:  # noqa: ANN001
    response = fake_response(b"caf\xe9", headers={"Content-Type": "text/html"}, apparent_encoding="ISO-8859-1")
    session = fake_session({f"{BASE}/page": response})

    assert fetch_text(session, f"{BASE}/page") == "café"


@pytest.mark.unit
def test_fetch_text_honors_explicit_charset(fake_session, fake_response) -> None:  # noqa: ANN001
    response = fake_response(b"caf\xe9", headers={"Content-Type": "text/html; charset=ISO-8859-1"})
    session = fake_session({f"{BASE}/page": response})

    assert fetch_text(session, f"{BASE}/page") == "café"


@pytest.mark.unit
def test_repository_acquirer_collects_markdown_and_cleans_up(mocker: MockerFixture) -> None:
    clones: list[Path] = []
    acquirer = RepositoryAcquirer("https://github.com/org/repo.git", "docs")
    layout = {
        "docs/a.md": "# A\n",
        "docs/sub/b.mdx": "# B\n",
        "docs/assets/c.md": "asset",
        "docs/img.png": "png",
        "docs/.ccignore": "x",
        "README.md": "outside docs",
    }
    mocker.patch.object(acquirer, "run_git", side_effect=make_fake_git(layout, clones=clones))

    acquisition = acquirer.acquire()

    assert [d.logical_path for d in acquisition.documents] == ["a.md", "sub/b.mdx"]
    assert all(d.kind is ContentKind.MARKDOWN for d in acquisition.documents)
    assert acquisition.documents[1].raw_content == "# B\n"
    assert acquisition.commit == "abc123"
    assert acquisition.source == "https://github.com/org/repo"
    assert acquisition.source_path == "docs"
    assert acquisition.failures == []
    assert len(clones) == 1
    assert not clones[0].exists()


@pytest.mark.unit
def test_repository_acquirer_missing_source_path_is_fatal_and_cleans_up(mocker: MockerFixture) -> None:
    clones: list[Path] = []
    acquirer = RepositoryAcquirer("https://github.com/org/repo.git", "documentation")
    mocker.patch.object(acquirer, "run_git", side_effect=make_fake_git({"docs/a.md": "A"}, clones=clones))

    with pytest.raises(SourcePathNotFoundError) as exc_info:
        acquirer.acquire()

    assert exc_info.value.folder == Path("documentation")
    assert not clones[0].exists()


@pytest.mark.unit
def test_repository_acquirer_ignores_symlinked_files(tmp_path: Path, mocker: MockerFixture) -> None:
    secret = tmp_path / "host_secret.txt"
    secret.write_text("HOST-SECRET", encoding="utf-8")
    acquirer = RepositoryAcquirer("https://github.com/org/repo.git", "docs")
    fake_git = make_fake_git(
        {"docs/a.md": "# A\n"},
        links={"docs/leak.md": secret, "docs/alias.md": Path("a.md")},
    )
    mocker.patch.object(acquirer, "run_git", side_effect=fake_git)

    acquisition = acquirer.acquire()

    assert [d.logical_path for d in acquisition.documents] == ["a.md"]
    assert all("HOST-SECRET" not in d.raw_content for d in acquisition.documents)


@pytest.mark.unit
def test_repository_acquirer_refuses_source_path_outside_checkout(tmp_path: Path, mocker: MockerFixture) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "private.md").write_text("private", encoding="utf-8")
    clones: list[Path] = []
    acquirer = RepositoryAcquirer("https://github.com/org/repo.git", "docs")
    fake_git = make_fake_git({"README.md": "readme"}, clones=clones, links={"docs": outside})
    mocker.patch.object(acquirer, "run_git", side_effect=fake_git)

    with pytest.raises(SourcePathNotFoundError) as exc_info:
        acquirer.acquire()

    assert "outside the repository" in str(exc_info.value)
    assert not clones[0].exists()
    assert (outside / "private.md").exists()


@pytest.mark.unit
def test_run_git_wraps_failed_command(mocker: MockerFixture) -> None:
    mocker.patch(
        "docs_sync.acquirers.subprocess.run",
        side_effect=subprocess.CalledProcessError(128, ["git", "clone"], output="", stderr="fatal: not found"),
    )
    acquirer = RepositoryAcquirer("https://github.com/org/missing.git", "docs")

    with pytest.raises(CloneError) as exc_info:
        acquirer.acquire()

    assert exc_info.value.returncode == 128  # noqa: PLR2004
    assert "fatal: not found" in str(exc_info.value)
    assert exc_info.value.command.startswith("git clone --depth 1")


@pytest.mark.unit
def test_run_git_wraps_missing_executable() -> None:
    acquirer = RepositoryAcquirer("https://github.com/org/repo.git", "docs", git_bin="definitely-not-a-git-binary")

    with pytest.raises(CloneError) as exc_info:
        acquirer.acquire()

    assert exc_info.value.returncode == -1


@pytest.mark.unit
def test_direct_fetch_isolates_failed_paths(fake_session) -> None:  # noqa: ANN001
    session = fake_session({f"{BASE}/a.md": "# A", f"{BASE}/api/c.md": "# C"})
    acquirer = DirectFetchAcquirer(BASE + "/", ["a.md", "b.md", "api/c.md"], session=session)

    acquisition = acquirer.acquire()

    assert session.requested == [f"{BASE}/a.md", f"{BASE}/b.md", f"{BASE}/api/c.md"]
    assert [d.logical_path for d in acquisition.documents] == ["a.md", "api/c.md"]
    assert acquisition.documents[1].source_url == f"{BASE}/api/c.md"
    assert [f.logical_path for f in acquisition.failures] == ["b.md"]
    assert "404" in acquisition.failures[0].error
    assert acquisition.track_hashes is True
    assert acquisition.source == BASE


@pytest.mark.unit
def test_html_scrape_records_page_failures(fake_session, connection_error: requests.ConnectionError) -> None:  # noqa: ANN001
    pages = [
        DocPage(url=f"{BASE}/start", output_path="start.md", title="Start"),
        DocPage(url=f"{BASE}/down", output_path="down.md", title="Down"),
    ]
    session = fake_session({f"{BASE}/start": "<main><p>hi</p></main>", f"{BASE}/down": connection_error})

    acquisition = HtmlScrapeAcquirer(pages, session=session).acquire()

    assert len(acquisition.documents) == 1
    doc = acquisition.documents[0]
    assert (doc.logical_path, doc.kind, doc.title, doc.source_url) == ("start.md", ContentKind.HTML, "Start", f"{BASE}/start")
    assert acquisition.failures[0].logical_path == "down.md"
    assert acquisition.failures[0].title == "Down"
    assert acquisition.source == BASE


@pytest.mark.unit
def test_llms_txt_acquirer_returns_one_blob(fake_session) -> None:  # noqa: ANN001
    session = fake_session({f"{BASE}/llms.txt": "===/a===\nA"})

    acquisition = LlmsTxtAcquirer(f"{BASE}/llms.txt", session=session).acquire()

    assert len(acquisition.documents) == 1
    assert acquisition.documents[0].kind is ContentKind.LLMS_TXT
    assert acquisition.documents[0].raw_content == "===/a===\nA"
    assert acquisition.source == f"{BASE}/llms.txt"


@pytest.mark.unit
def test_llms_txt_acquirer_failure_is_fatal(fake_session) -> None:  # noqa: ANN001
    session = fake_session({f"{BASE}/llms.txt": (403, "blocked")})

    with pytest.raises(FetchError) as exc_info:
        LlmsTxtAcquirer(f"{BASE}/llms.txt", session=session).acquire()

    assert exc_info.value.status_code == 403  # noqa: PLR2004


@pytest.mark.unit
def test_build_acquirer_matches_kind(fake_session) -> None:  # noqa: ANN001
    session = fake_session({})
    configs = {
        RepositoryAcquirer: SyncConfig(kind="repository", source="https://x/r.git", source_path="docs"),
        DirectFetchAcquirer: SyncConfig(kind="direct", source=BASE, paths=["a.md"]),
        HtmlScrapeAcquirer: SyncConfig(kind="html", pages=[{"url": f"{BASE}/p", "output_path": "p.md", "title": "P"}]),
        LlmsTxtAcquirer: SyncConfig(kind="llms_txt", source=f"{BASE}/llms.txt"),
    }

    for expected, config in configs.items():
        assert isinstance(build_acquirer(config, session=session), expected)
