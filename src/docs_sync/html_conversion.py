"""HTML page to markdown conversion.

Two steps: :func:`extract_content` picks the main content node of a page and
strips site chrome, then :func:`convert_to_markdown` renders what is left with
markdownify, keeping the language of fenced code blocks.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

import yaml
from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

from docs_sync.config import DEFAULT_CONTENT_SELECTORS, DEFAULT_REMOVE_SELECTORS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bs4 import Tag

HTML_PARSER = "lxml"

_LANGUAGE_CLASS = re.compile(r"^language-(?P<lang>\S+)$")
_BLANK_LINES = re.compile(r"\n{3,}")
_H1 = re.compile(r"^#[ \t]+(?P<title>.+?)[ \t]*$", re.MULTILINE)


def extract_content(
    html: str,
    candidate_selectors: Sequence[str] = DEFAULT_CONTENT_SELECTORS,
    remove_selectors: Sequence[str] = DEFAULT_REMOVE_SELECTORS,
) -> Tag:
    """Locate the main content of a page and drop boilerplate nodes from it.

    The first candidate selector matching a node wins; without a match the
    ``<body>`` (or the whole document) is used. Every node under the chosen
    root matching one of ``remove_selectors`` is destroyed. The result may be
    empty; no check is made on what remains.

    Args:
        html (str): the raw page
        candidate_selectors (Sequence[str]): CSS selectors tried in order for the content root
        remove_selectors (Sequence[str]): CSS selectors of nodes to remove from the root

    Returns:
        Tag: the cleaned content root
    """
    soup = BeautifulSoup(html, HTML_PARSER)
    root: Tag | None = None
    for selector in candidate_selectors:
        root = soup.select_one(selector)
        if root is not None:
            break
    if root is None:
        root = soup.body or soup

    for selector in remove_selectors:
        for node in root.select(selector):
            if not node.decomposed:
                node.decompose()
    return root


def code_language(pre: Tag, code: Tag | None) -> str:
    """Infer the fence language of a ``<pre>`` block.

    Priority: a ``language-xxx`` class on the nested ``<code>``, then a
    ``data-lang`` attribute, else an empty string.
    """
    if code is not None:
        for css_class in code.get("class") or []:
            match = _LANGUAGE_CLASS.match(css_class)
            if match:
                return match.group("lang")
        if code.get("data-lang"):
            return str(code["data-lang"])
    if pre.get("data-lang"):
        return str(pre["data-lang"])
    return ""


class DocsMarkdownConverter(MarkdownConverter):
    """markdownify converter with fenced ``<pre>`` blocks that keep their language."""

    def __init__(self, **options: Any) -> None:  # noqa: ANN401
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        super().__init__(**options)

    def convert_pre(self, el: Tag, text: str, parent_tags: set[str]) -> str:  # noqa: ARG002
        code = el.find("code")
        lang = code_language(el, code)
        body = (code or el).get_text().strip()
        return f"\n\n```{lang}\n{body}\n```\n\n"


def convert_to_markdown(root: Tag) -> str:
    """Render a content tree as markdown.

    Args:
        root (Tag): the content root returned by :func:`extract_content`

    Returns:
        str: markdown text ending with a single newline (empty for an empty tree)
    """
    text = DocsMarkdownConverter().convert_soup(root)
    text = "\n".join(line.rstrip() for line in text.splitlines())
    text = _BLANK_LINES.sub("\n\n", text).strip()
    return text + "\n" if text else ""


def render_front_matter(metadata: dict[str, str]) -> str:
    """Render ``metadata`` as a YAML front-matter block."""
    body = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, width=1000)
    return f"---\n{body}---\n"


def render_document(markdown: str, metadata: dict[str, str]) -> str:
    """Prefix ``markdown`` with a front-matter header.

    Args:
        markdown (str): the document body
        metadata (dict[str, str]): header fields, written in insertion order

    Returns:
        str: the full document
    """
    return f"{render_front_matter(metadata)}\n{markdown.rstrip()}\n"


def extract_title(markdown: str, fallback_path: str) -> str:
    """Return the first level-1 heading, or the file name without extension."""
    match = _H1.search(markdown)
    if match:
        return match.group("title")
    name = PurePosixPath(fallback_path.replace("\\", "/")).name
    for suffix in (".mdx", ".md"):
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return name or fallback_path
