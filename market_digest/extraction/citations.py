"""Citation extraction — a prioritized chain of parsing strategies.

Chain (first strategy that yields at least one citation wins):
  1. StructuredSourcesStrategy    — source records supplied by the API
  2. SourcesBlockStrategy         — trailing "Sources:" block of ``N. https://...`` lines
  3. InlineSourcesSectionStrategy — "Sources:" section of ``[N] Title - domain/path`` entries
  4. InlineUrlObjectStrategy      — ``["url": "https://..."]`` objects anywhere in the text

Strategies never raise on odd input; they report "nothing found" and the
next one is tried on the untouched text. Favicons are resolved once for the
winning strategy's citations.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from market_digest.core.domains import derive_domain, ensure_scheme
from market_digest.core.logger import logger
from market_digest.extraction.favicons import FaviconResolver
from market_digest.extraction.normalizer import find_citation_references
from market_digest.models.datatypes import ApiSource, Citation

SourceLike = Union[ApiSource, Mapping[str, Any]]

_SOURCES_HEADING = re.compile(r"^[ \t]*(?:\*\*)?Sources(?:\*\*)?[ \t]*(?::|$)", re.IGNORECASE | re.MULTILINE)
_SOURCE_LINE = re.compile(r"^\s*\[?(\d+)\]?\.?:?\s+(https?://\S+)", re.IGNORECASE)

_SECTION_HEADING = re.compile(r"^[ \t]*(?:\*\*)?Sources?(?:\*\*)?[ \t]*:", re.IGNORECASE | re.MULTILINE)
_SECTION_ENTRY = re.compile(r"\[(\d+)\]\s*([^\[]+?)(?=\s*(?:\[\d+\]|\Z))", re.DOTALL)
_EXPLICIT_URL = re.compile(r"https?://[^\s)\]>]+", re.IGNORECASE)
_LOOSE_URL = re.compile(r"(?:(?:https?:)?//)?[\w-]+(?:\.[\w-]+)+[^\s)]+")
_TITLE_EDGES = re.compile(r"^[-:|,\s(]+|[-:|,\s()]+$")
_EMPTY_BRACKETS = re.compile(r"\(\s*\)|<\s*>")

_URL_OBJECT = re.compile(r"""\[\s*(?:"url"\s*:\s*"([^"]+)"|'url'\s*:\s*'([^']+)')\s*\]""")


@dataclass(frozen=True)
class StrategyResult:
    """Citations found by one strategy plus the text with their source block removed."""
    citations: Tuple[Citation, ...]
    content: str


@dataclass(frozen=True)
class ExtractionResult:
    """Final extractor output, including which strategy produced it."""
    citations: Tuple[Citation, ...]
    content: str
    strategy: Optional[str] = None


class CitationStrategy(ABC):
    """One way of recovering citations from upstream text."""

    name: str = "base"

    @abstractmethod
    def try_extract(self, text: str, api_sources: Sequence[ApiSource]) -> Optional[StrategyResult]:
        """
        Attempt extraction.

        Args:
            text (str): Text with any sentiment directive already removed.
            api_sources (Sequence[ApiSource]): Structured hints (may be empty).

        Returns:
            Optional[StrategyResult]: ``None`` when this strategy found nothing.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class StructuredSourcesStrategy(CitationStrategy):
    """Numbers API-supplied sources 1..N in input order. Text is left untouched."""

    name = "structured_sources"

    def try_extract(self, text: str, api_sources: Sequence[ApiSource]) -> Optional[StrategyResult]:
        if not api_sources:
            return None
        citations = []
        for number, source in enumerate(api_sources, start=1):
            url = source.url or "#"
            title = source.title or (derive_domain(source.url) if source.url else "") or f"Source {number}"
            citations.append(Citation(number=number, title=title, url=url))
        return StrategyResult(citations=tuple(citations), content=text)


class SourcesBlockStrategy(CitationStrategy):
    """Last line-leading ``Sources:`` heading, then one ``N. URL`` / ``[N] URL`` / ``N: URL`` per line."""

    name = "sources_block"

    def try_extract(self, text: str, api_sources: Sequence[ApiSource]) -> Optional[StrategyResult]:
        heading = _last_match(_SOURCES_HEADING, text)
        if heading is None:
            return None

        citations = []
        for line in text[heading.end():].splitlines():
            match = _SOURCE_LINE.search(line)
            if not match:
                continue
            number = int(match.group(1))
            url = match.group(2).strip()
            logger.debug(f"SourcesBlockStrategy: source #{number}: {url}")
            citations.append(Citation(number=number, title=derive_domain(url), url=url))

        if not citations:
            return None
        return StrategyResult(citations=tuple(citations), content=text[:heading.start()].strip())


class InlineSourcesSectionStrategy(CitationStrategy):
    """Last line-leading ``Sources:`` section of ``[N] <title and/or domain>`` entries."""

    name = "inline_sources_section"

    def try_extract(self, text: str, api_sources: Sequence[ApiSource]) -> Optional[StrategyResult]:
        heading = _last_match(_SECTION_HEADING, text)
        if heading is None:
            return None

        citations = []
        for entry in _SECTION_ENTRY.finditer(text[heading.end():]):
            number = int(entry.group(1))
            entry_text = entry.group(2).strip()
            raw_url = _find_url(entry_text)
            if not raw_url:
                continue
            url = ensure_scheme(raw_url)
            title = _clean_title(entry_text.replace(raw_url, "", 1))
            citations.append(Citation(number=number, title=title or derive_domain(url), url=url))

        if not citations:
            return None
        return StrategyResult(citations=tuple(citations), content=text[:heading.start()].strip())


class InlineUrlObjectStrategy(CitationStrategy):
    """Bracketed single-key ``url`` objects, numbered in encounter order."""

    name = "inline_url_objects"

    def try_extract(self, text: str, api_sources: Sequence[ApiSource]) -> Optional[StrategyResult]:
        citations = []
        for number, match in enumerate(_URL_OBJECT.finditer(text), start=1):
            url = match.group(1) or match.group(2)
            citations.append(Citation(number=number, title=derive_domain(url), url=url))

        if not citations:
            return None
        return StrategyResult(citations=tuple(citations), content=_URL_OBJECT.sub("", text))


DEFAULT_STRATEGIES: Tuple[CitationStrategy, ...] = (
    StructuredSourcesStrategy(),
    SourcesBlockStrategy(),
    InlineSourcesSectionStrategy(),
    InlineUrlObjectStrategy(),
)


class CitationExtractor:
    """Runs the strategy chain and finalizes the winning citations.

    Args:
        strategies: Strategies in priority order (default :data:`DEFAULT_STRATEGIES`).
        favicons: Resolver used to fill ``Citation.favicon``.
    """

    def __init__(
        self,
        strategies: Sequence[CitationStrategy] = DEFAULT_STRATEGIES,
        favicons: Optional[FaviconResolver] = None,
    ) -> None:
        self.strategies = tuple(strategies)
        self.favicons = favicons or FaviconResolver()

    def extract(
        self,
        raw_text: str,
        api_sources: Optional[Sequence[SourceLike]] = None,
    ) -> Tuple[Tuple[Citation, ...], str]:
        """Return ``(citations sorted by number, text with sources stripped)``."""
        result = self.extract_with_strategy(raw_text, api_sources)
        return result.citations, result.content

    def extract_with_strategy(
        self,
        raw_text: str,
        api_sources: Optional[Sequence[SourceLike]] = None,
    ) -> ExtractionResult:
        """Like :meth:`extract`, also reporting which strategy produced the citations."""
        text = raw_text or ""
        sources = _coerce_sources(api_sources)

        for strategy in self.strategies:
            found = strategy.try_extract(text, sources)
            if found and found.citations:
                citations = self._finalize(found.citations)
                logger.info(
                    f"CitationExtractor: {len(citations)} citation(s) via {strategy.name}"
                )
                return ExtractionResult(citations=citations, content=found.content, strategy=strategy.name)

        references = find_citation_references(text)
        if references:
            logger.warning(
                f"CitationExtractor: found citation references {references} "
                f"but could not extract any sources"
            )
        return ExtractionResult(citations=(), content=text, strategy=None)

    def _finalize(self, citations: Sequence[Citation]) -> Tuple[Citation, ...]:
        """Sort by number, drop repeated or non-positive numbers (first wins), attach favicons."""
        unique: List[Citation] = []
        seen = set()
        for citation in sorted(citations, key=lambda c: c.number):
            if citation.number < 1 or citation.number in seen:
                logger.debug(f"CitationExtractor: dropping citation #{citation.number} ({citation.url})")
                continue
            seen.add(citation.number)
            unique.append(citation)

        icons = self.favicons.resolve_many([c.url for c in unique])
        return tuple(replace(c, favicon=icon) for c, icon in zip(unique, icons))


# ── helpers ───────────────────────────────────────────────────────────────────

def _coerce_sources(api_sources: Optional[Sequence[SourceLike]]) -> Tuple[ApiSource, ...]:
    """Accept ApiSource objects or ``{url, title}`` dicts; ``None`` means none."""
    if not api_sources:
        return ()
    coerced = []
    for source in api_sources:
        if isinstance(source, ApiSource):
            coerced.append(source)
        elif isinstance(source, Mapping):
            coerced.append(ApiSource.from_dict(source))
        else:
            logger.warning(f"CitationExtractor: ignoring unsupported source {source!r}")
    return tuple(coerced)


def _last_match(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    """The final heading wins; earlier ones are part of the prose."""
    matches = list(pattern.finditer(text))
    return matches[-1] if matches else None


def _find_url(entry_text: str) -> str:
    """Prefer an explicit http(s) URL; fall back to a bare ``domain.tld/path``."""
    match = _EXPLICIT_URL.search(entry_text) or _LOOSE_URL.search(entry_text)
    return match.group(0) if match else ""


def _clean_title(text: str) -> str:
    text = _EMPTY_BRACKETS.sub("", text)
    return _TITLE_EDGES.sub("", text).strip()
