"""Digest engine: one end-to-end refresh of the market digest.

Flow per run:
  1. Cache     — reuse a digest younger than ``cache_max_age_hours`` (skipped on ``force``)
  2. Generate  — PerplexityProvider.generate() → raw text + source hints
  3. Assemble  — DigestAssembler → Digest, cached and appended to the history
  4. Fallback  — on upstream failure or a digest without citations:
                 last cached digest of any age → FALLBACK_DIGEST
  5. Sentiment — SentimentResolver.resolve(content, digest.explicit_sentiment)

Serialises to output/digest.json. Upstream failures never abort the run; the
result is flagged ``used_fallback`` instead.
"""

import json
import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from market_digest.core.cache import SQLiteCache
from market_digest.core.config import DigestSettings
from market_digest.core.logger import logger
from market_digest.extraction.citations import CitationExtractor, SourceLike
from market_digest.extraction.favicons import FaviconResolver
from market_digest.models.datatypes import Citation, Digest, SentimentEvidence
from market_digest.pipeline.assembler import DigestAssembler
from market_digest.providers.base import TextGenerator
from market_digest.providers.perplexity import GenerationError, PerplexityProvider
from market_digest.providers.sentiment import SentimentResolver

CACHE_KEY = "latest_digest"
OUTPUT_FILENAME = "digest.json"
MAX_HISTORICAL_DIGESTS = 30

SOURCE_CACHE = "cache"
SOURCE_API = "api"
SOURCE_INPUT = "input"
SOURCE_STALE_CACHE = "stale_cache"
SOURCE_FALLBACK = "fallback"

FALLBACK_DIGEST = Digest(
    content=(
        "The cryptocurrency market is showing resilience today with major assets maintaining "
        "their positions. Bitcoin continues to demonstrate strength above key support levels, "
        "while Ethereum's network activity remains robust. Market sentiment indicators suggest "
        "a cautiously optimistic outlook, with institutional interest remaining steady [1]. "
        "Technical analysis points to potential consolidation phases for leading "
        "cryptocurrencies [2]."
    ),
    citations=(
        Citation(
            number=1,
            title="CoinGecko Market Analysis",
            url="https://www.coingecko.com",
            favicon="https://www.coingecko.com/favicon.ico",
        ),
        Citation(
            number=2,
            title="TradingView Technical Analysis",
            url="https://www.tradingview.com",
            favicon="https://www.tradingview.com/favicon.ico",
        ),
    ),
)


@dataclass(frozen=True)
class RunResult:
    """Outcome of one engine run."""
    digest: Digest
    sentiment: str
    evidence: SentimentEvidence
    source: str
    used_fallback: bool = False
    output_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.digest.to_record(),
            "sentiment": self.sentiment,
            "evidence": self.evidence.to_dict(),
            "source": self.source,
            "used_fallback": self.used_fallback,
        }


class DigestEngine:
    """Orchestrates generation, assembly, caching and sentiment for one digest.

    Args:
        settings: Typed settings (see :func:`settings_from_config`).
        generator: Upstream text generator (default :class:`PerplexityProvider`).
        assembler: Digest assembler (default built from ``settings``).
        resolver: Sentiment resolver (default uses ``settings.sentiment_margin``).
        cache: Digest cache (default :class:`SQLiteCache` at ``settings.cache_path``).
    """

    def __init__(
        self,
        settings: DigestSettings,
        generator: Optional[TextGenerator] = None,
        assembler: Optional[DigestAssembler] = None,
        resolver: Optional[SentimentResolver] = None,
        cache: Optional[SQLiteCache] = None,
    ) -> None:
        self.settings = settings
        self.output_dir = settings.output_dir

        self.generator = generator or PerplexityProvider(
            api_key=settings.api_key,
            model=settings.model,
            domain_filter=settings.domain_filter,
            temperature=settings.temperature,
            timeout=settings.timeout_seconds,
        )
        self.assembler = assembler or DigestAssembler(
            extractor=CitationExtractor(
                favicons=FaviconResolver(
                    probe=settings.probe_favicons,
                    max_workers=settings.favicon_workers,
                    timeout=settings.favicon_timeout_seconds,
                )
            )
        )
        self.resolver = resolver or SentimentResolver(margin=settings.sentiment_margin)
        self.cache = cache or SQLiteCache(settings.cache_path)

    # ── public ────────────────────────────────────────────────────────────────

    def run(self, force: bool = False) -> RunResult:
        """Produce the current digest and write it to ``output/digest.json``.

        Args:
            force: Skip the fresh-cache check and always call the generator.

        Returns:
            :class:`RunResult` describing where the digest came from.
        """
        if not force:
            cached = self.cache.get(CACHE_KEY, max_age_hours=self.settings.cache_max_age_hours)
            if cached:
                logger.info("DigestEngine: using cached digest")
                return self._finish(Digest.from_record(cached), SOURCE_CACHE)

        try:
            generated = self.generator.generate()
        except (GenerationError, requests.RequestException) as exc:
            logger.error(f"DigestEngine: generation failed: {exc}")
            return self._fallback()

        digest = self.assembler.assemble(generated.text, generated.sources)
        if not digest.citations:
            logger.error("DigestEngine: upstream response has no citations, treating it as corrupted")
            return self._fallback()

        record = digest.to_record()
        self.cache.set(CACHE_KEY, record)
        self.cache.append_history(record)
        return self._finish(digest, SOURCE_API)

    def run_from_text(self, raw_text: str, api_sources: Optional[Sequence[SourceLike]] = None) -> RunResult:
        """Assemble a saved upstream response offline. The cache is left untouched."""
        digest = self.assembler.assemble(raw_text, api_sources)
        return self._finish(digest, SOURCE_INPUT)

    def history(self, limit: int = MAX_HISTORICAL_DIGESTS) -> List[Digest]:
        """Previously generated digests, newest first."""
        return [Digest.from_record(record) for record in self.cache.history(limit)]

    # ── internal ──────────────────────────────────────────────────────────────

    def _fallback(self) -> RunResult:
        stale = self.cache.get(CACHE_KEY)
        if stale:
            logger.warning("DigestEngine: serving last cached digest")
            return self._finish(Digest.from_record(stale), SOURCE_STALE_CACHE, used_fallback=True)

        logger.warning("DigestEngine: no cached digest, serving built-in fallback content")
        digest = replace(FALLBACK_DIGEST, timestamp=datetime.now(timezone.utc).isoformat())
        return self._finish(digest, SOURCE_FALLBACK, used_fallback=True)

    def _finish(self, digest: Digest, source: str, used_fallback: bool = False) -> RunResult:
        verdict, evidence = self.resolver.resolve(digest.content, digest.explicit_sentiment)
        result = RunResult(
            digest=digest,
            sentiment=verdict,
            evidence=evidence,
            source=source,
            used_fallback=used_fallback,
        )
        path = self._write_json(result)
        logger.info(
            f"DigestEngine: {source} digest, sentiment={verdict}, "
            f"{len(digest.citations)} citation(s) → {path}"
        )
        return replace(result, output_path=path)

    def _write_json(self, result: RunResult) -> str:
        """Write the run result to output/digest.json (overwrites each run)."""
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, OUTPUT_FILENAME)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        return path
