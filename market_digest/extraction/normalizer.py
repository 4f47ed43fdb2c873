"""Text clean-up applied around citation extraction.

Order used by the assembler:
  1. ``extract_explicit_sentiment``, before anything else touches the text.
  2. (citation extraction strips source blocks)
  3. ``normalize``: bold markers, ordinal list markers, paragraph breaks.

Inline ``[N]`` citation markers are left in place for the link renderer.
"""

import re
from typing import List, Optional, Tuple

from market_digest.models.datatypes import SENTIMENT_DOWN, SENTIMENT_NEUTRAL, SENTIMENT_UP

_SENTIMENT_DIRECTIVE = re.compile(r"^SENTIMENT:[ \t]*(BULLISH|BEARISH|NEUTRAL)[ \t]*(?:\r?\n|\Z)\s*", re.IGNORECASE)
_BOLD = re.compile(r"\*\*")
# Repeated so that "1. 2. text" is fully cleared in one pass
_ORDINAL = re.compile(r"^(?:\d+\.[ \t]+)+", re.MULTILINE)
_PARAGRAPH_BREAKS = re.compile(r"\n{2,}")
_CITATION_MARKER = re.compile(r"\[(\d+)\]")

_DIRECTIVE_MAP = {
    "BULLISH": SENTIMENT_UP,
    "BEARISH": SENTIMENT_DOWN,
    "NEUTRAL": SENTIMENT_NEUTRAL,
}


def extract_explicit_sentiment(text: str) -> Tuple[Optional[str], str]:
    """Split a leading ``SENTIMENT: BULLISH|BEARISH|NEUTRAL`` line off the text.

    Args:
        text (str): Raw upstream text.

    Returns:
        Tuple of ``(verdict or None, remaining text)``. The remaining text is
        trimmed when a directive was removed and returned untouched otherwise.
    """
    match = _SENTIMENT_DIRECTIVE.match(text or "")
    if not match:
        return None, text or ""
    verdict = _DIRECTIVE_MAP[match.group(1).upper()]
    return verdict, text[match.end():].strip()


def normalize(text: str) -> str:
    """Strip markdown artifacts and normalize paragraph spacing.

    - removes ``**`` bold markers
    - removes ``<digits>. `` ordinal markers at line start
    - collapses runs of two or more newlines into one blank line

    The steps repeat until the text stops changing, so the result is a fixed
    point: ``normalize(normalize(x)) == normalize(x)``.
    """
    if not text:
        return ""
    previous = None
    while text != previous:
        previous = text
        text = _BOLD.sub("", text)
        text = _ORDINAL.sub("", text)
        text = _PARAGRAPH_BREAKS.sub("\n\n", text)
        text = text.strip()
    return text


def find_citation_references(text: str) -> List[int]:
    """Return the unique positive ``[N]`` marker numbers in encounter order."""
    seen: List[int] = []
    for match in _CITATION_MARKER.finditer(text or ""):
        number = int(match.group(1))
        if number > 0 and number not in seen:
            seen.append(number)
    return seen
