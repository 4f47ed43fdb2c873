"""Digest assembly — raw upstream text to a structured :class:`Digest`.

Flow:
  1. Sentiment directive — ``SENTIMENT: BULLISH`` line split off first
  2. Citations           — CitationExtractor strategy chain
  3. Normalization       — bold/ordinal markers, paragraph breaks
  4. Timestamp           — current UTC instant, ISO-8601

Sentiment is resolved afterwards by the caller, passing the digest's own
hint::

    digest = assembler.assemble(text, sources)
    verdict, evidence = resolver.resolve(digest.content, digest.explicit_sentiment)
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from market_digest.core.logger import logger
from market_digest.extraction.citations import CitationExtractor, SourceLike
from market_digest.extraction.normalizer import extract_explicit_sentiment, normalize
from market_digest.models.datatypes import Digest


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DigestAssembler:
    """Builds a Digest from one upstream response.

    Args:
        extractor: Citation extractor (default :class:`CitationExtractor`).
        clock: Returns the instant stamped onto each digest.
    """

    def __init__(
        self,
        extractor: Optional[CitationExtractor] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.extractor = extractor or CitationExtractor()
        self.clock = clock

    def assemble(self, raw_text: Optional[str], api_sources: Optional[Sequence[SourceLike]] = None) -> Digest:
        """Assemble a digest from raw text and optional structured sources.

        Args:
            raw_text: Upstream prose (``None`` is treated as ``""``).
            api_sources: Structured source hints; ``None`` behaves like ``[]``.

        Returns:
            :class:`Digest` with citations sorted by number.
        """
        explicit, text = extract_explicit_sentiment(raw_text or "")
        if explicit:
            logger.info(f"DigestAssembler: explicit sentiment directive → {explicit}")

        citations, stripped = self.extractor.extract(text, api_sources)
        content = normalize(stripped)

        digest = Digest(
            content=content,
            citations=citations,
            timestamp=self.clock().isoformat(),
            explicit_sentiment=explicit,
        )
        logger.info(
            f"DigestAssembler: {len(content)} chars, {len(citations)} citation(s), "
            f"explicit_sentiment={explicit}"
        )
        return digest
