from __future__ import annotations

import re
from dataclasses import dataclass

_DASH_RUN = re.compile(r"-{2,}")


@dataclass(frozen=True)
class PathMapper:
    """Map a document's logical path to its file name under the resources directory.

    ``docs/guides/chat.mdx`` becomes ``guides-chat.md`` with ``strip_prefix="docs/"``.
    With ``flatten=False`` the directory structure is kept and only the
    extension is normalized.

    Attributes:
        strip_prefix: Leading prefix removed when present (e.g. ``"docs/"``).
        flatten: Join path components with ``-`` instead of keeping folders.
    """

    strip_prefix: str = ""
    flatten: bool = True

    def map(self, logical_path: str) -> str:
        path = logical_path.replace("\\", "/").lstrip("/")
        prefix = self.strip_prefix.replace("\\", "/").lstrip("/")
        if prefix and path.startswith(prefix):
            path = path[len(prefix) :].lstrip("/")
        if self.flatten:
            path = _DASH_RUN.sub("-", path.replace("/", "-"))
        return force_md_extension(path)


def force_md_extension(path: str) -> str:
    """Rewrite ``.mdx`` to ``.md`` and append ``.md`` to any other name."""
    lowered = path.lower()
    if lowered.endswith(".mdx"):
        return path[: -len(".mdx")] + ".md"
    if lowered.endswith(".md"):
        return path[: -len(".md")] + ".md"
    return path + ".md"
