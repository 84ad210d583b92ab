"""Split rendered rule documents into labelled sections.

Rule documents are organised as lettered ("A.", "B.") or numbered ("1)", "2)")
blocks. Each anchor marks the start of one section; the section runs until the
next anchor that was found, or the end of the text.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from .patterns import BULLETS

_OPENING_BRACKETS = "([{"


@dataclass(frozen=True)
class SectionAnchor:
    """A section label and the glyph that introduces it in the text."""

    label: str
    glyph: str


def letter_anchors(letters: str = "ABCD") -> tuple[SectionAnchor, ...]:
    return tuple(SectionAnchor(label=letter, glyph=f"{letter}.") for letter in letters)


def numbered_anchors(count: int) -> tuple[SectionAnchor, ...]:
    return tuple(
        SectionAnchor(label=str(number), glyph=f"{number})")
        for number in range(1, count + 1)
    )


def normalize_text(text: str) -> str:
    """Unify line endings and trim surrounding whitespace."""
    return re.sub(r"\r\n?", "\n", text or "").strip()


def _occurrences(text: str, glyph: str, start: int) -> Iterator[tuple[int, bool]]:
    """Yield (position, at_line_start) for every plausible anchor occurrence."""
    pattern = re.compile(re.escape(glyph) + r"(?=\s|$)")
    for match in pattern.finditer(text, start):
        position = match.start()
        previous = text[position - 1] if position > 0 else ""
        if previous and (
            previous.isalnum() or previous == "_" or previous in _OPENING_BRACKETS
        ):
            continue
        line_start = text.rfind("\n", 0, position) + 1
        prefix = text[line_start:position]
        yield position, prefix.strip(" \t" + BULLETS) == ""


def find_anchor(text: str, glyph: str, start: int = 0) -> int | None:
    """Locate an anchor glyph, preferring occurrences that open a line.

    Inline occurrences are only used when the glyph never starts a line,
    which happens when a renderer collapses line breaks.
    """
    inline: int | None = None
    for position, at_line_start in _occurrences(text, glyph, start):
        if at_line_start:
            return position
        if inline is None:
            inline = position
    return inline


def segment_sections(text: str, anchors: Sequence[SectionAnchor]) -> dict[str, str]:
    """Map each found anchor label to its section text.

    Anchors are searched in the given order, each one after the previous
    anchor that was found. Anchors that are not present produce no entry.
    """
    found: list[tuple[str, int]] = []
    cursor = 0
    for anchor in anchors:
        position = find_anchor(text, anchor.glyph, cursor)
        if position is None:
            continue
        found.append((anchor.label, position))
        cursor = position + len(anchor.glyph)

    sections: dict[str, str] = {}
    for index, (label, position) in enumerate(found):
        end = found[index + 1][1] if index + 1 < len(found) else len(text)
        sections[label] = text[position:end].strip()
    return sections


def split_heading(section: str) -> tuple[str, str]:
    """Split a section into its heading line and the remaining body."""
    heading, _, body = section.partition("\n")
    return heading.strip(), body


def preamble(text: str, anchors: Sequence[SectionAnchor]) -> str:
    """Return the text that precedes the first section of a document."""
    for anchor in anchors:
        position = find_anchor(text, anchor.glyph)
        if position is not None:
            return text[:position]
    return text


def document_title(text: str, pattern: re.Pattern[str]) -> str:
    match = pattern.search(text)
    if match:
        return match.group(0).strip()
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def document_framing(text: str) -> str:
    """Return the "Framing:" paragraph with line wraps collapsed."""
    match = re.search(r"Framing:\s*(.*)", text, re.IGNORECASE | re.DOTALL)
    if not match:
        return ""
    return re.sub(r"\s+", " ", match.group(1)).strip()
