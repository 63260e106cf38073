"""Extraction of module references from generated HTML."""
from __future__ import annotations

from typing import Iterator
import re

from lxml import etree

_IMPORT_PATTERN = re.compile(
    r"""\bimport\b                       # keyword
        (?:\s*[\w$*{}\s,]+?\s*\bfrom\b)?  # optional bindings ... from
        \s*\(?\s*                         # optional dynamic-import parenthesis
        (['"])(?P<spec>[^'"\r\n]+)\1
    """,
    re.VERBOSE,
)


def _parse(markup: str) -> etree._Element | None:
    if not markup or not markup.strip():
        return None
    parser = etree.HTMLParser(recover=True)
    try:
        return etree.fromstring(markup, parser)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        return None


def scan_imports(script: str) -> Iterator[str]:
    """Yield the specifiers of static imports found in inline ``script`` text."""

    for match in _IMPORT_PATTERN.finditer(script):
        yield match.group("spec")


def scan(markup: str) -> Iterator[str]:
    """Yield module specifiers referenced by ``<script>`` tags in ``markup``.

    Tags are visited in document order. A ``src`` attribute is yielded
    verbatim; otherwise the inline body is scanned for import statements.
    Each call re-parses ``markup``, so the result can be restarted by calling
    again.
    """

    root = _parse(markup)
    if root is None:
        return
    for tag in root.iter("script"):
        src = tag.get("src")
        if src is not None:
            yield src
            continue
        if tag.text:
            yield from scan_imports(tag.text)


__all__ = ["scan", "scan_imports"]
