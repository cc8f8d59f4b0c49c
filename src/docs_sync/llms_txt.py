"""Parser for the sectioned ``llms.txt`` convention.

A documentation site may publish every page concatenated into one text file,
each page introduced by a delimiter line of the form ``===/<path>===``::

    ===/docs/guides/chat===
    # Chat
    ...
"""

from __future__ import annotations

import re

from docs_sync.logging import logger

SECTION_DELIMITER = re.compile(r"^===/(?P<path>[^=\n]+)===", re.MULTILINE)


def parse_llms_txt(blob: str) -> dict[str, str]:
    """Split an ``llms.txt`` blob into a mapping of logical path to page body.

    Text before the first delimiter is discarded and sections whose body is
    blank are dropped. When a path appears twice the later body wins, keeping
    the position of the first occurrence.

    Args:
        blob (str): the full llms.txt content

    Returns:
        dict[str, str]: page bodies keyed by logical path, stripped of surrounding whitespace
    """
    sections: dict[str, str] = {}
    matches = list(SECTION_DELIMITER.finditer(blob))
    for idx, match in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(blob)
        body = blob[match.end() : end].strip()
        if not body:
            continue
        path = match.group("path").strip()
        if path in sections:
            logger.warning("llms_txt_duplicate_section", path=path)
        sections[path] = body
    return sections
