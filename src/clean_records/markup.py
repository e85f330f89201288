"""Markup to plain text conversion."""

import re

from lxml import html as lxml_html

_MARKUP = re.compile(r"</?[A-Za-z][^>]*>|<!--|&(?:#[0-9]+|#[xX][0-9A-Fa-f]+|[A-Za-z][A-Za-z0-9]*);")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v\xa0]+")

# Nested escapes like &amp;lt; need one pass per level
MAX_PASSES = 5

SKIPPED_TAGS = {"img", "script", "style", "head", "title", "noscript", "iframe"}
BLOCK_TAGS = {
    "p", "div", "section", "article", "header", "footer", "aside", "blockquote",
    "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "dl", "dt", "dd",
    "table", "tr", "pre", "figure", "figcaption", "hr",
}


def has_markup(text: str) -> bool:
    return bool(_MARKUP.search(text))


def _render(element, parts: list[str]) -> None:
    tag = element.tag if isinstance(element.tag, str) else None

    if tag is not None and tag not in SKIPPED_TAGS:
        if tag == "br":
            parts.append("\n")
        else:
            block = tag in BLOCK_TAGS
            if block:
                parts.append("\n")
            if element.text:
                parts.append(element.text)
            for child in element:
                _render(child, parts)
            if block:
                parts.append("\n")

    # Tail text belongs to the parent, so it survives skipped elements and comments
    if element.tail:
        parts.append(element.tail)


def _normalize_lines(text: str) -> str:
    lines = []
    for line in text.split("\n"):
        line = _INLINE_SPACE.sub(" ", line).strip()
        if line or (lines and lines[-1]):
            lines.append(line)
    return "\n".join(lines).strip()


def _to_text(text: str) -> str:
    fragment = lxml_html.fragment_fromstring(text, create_parent="div")
    parts: list[str] = []
    if fragment.text:
        parts.append(fragment.text)
    for child in fragment:
        _render(child, parts)
    return _normalize_lines("".join(parts))


def strip_markup(text: str | None) -> str:
    """Convert markup to plain text.

    ``<br>`` and block elements become newlines. Images and scripts are dropped
    while link text is kept. Entity references are decoded, and escaped tags
    revealed by decoding are converted again until the text is stable, so the
    conversion is idempotent. Text with no tags or entities is only trimmed.
    """
    if not text:
        return ""

    result = text.strip()
    for _ in range(MAX_PASSES):
        if not has_markup(result):
            break
        converted = _to_text(result)
        if converted == result:
            break
        result = converted
    return result
