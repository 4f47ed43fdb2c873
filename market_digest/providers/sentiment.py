"""Lexicon-based market sentiment scoring.

Pipeline:
    digest content (str) → LexiconScanner.scan() → ScanResult
                         → SentimentResolver.resolve(content, hint) → (verdict, SentimentEvidence)

Verdict rule:
    explicit hint present  → hint, evidence source ``"api"``
    positive > negative + margin → ``"up"``
    negative > positive + margin → ``"down"``
    otherwise              → ``"neutral"``

The scanner always runs, even when a hint decides the verdict, so that the
evidence breakdown is populated and logged for every digest.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from market_digest.core.logger import logger
from market_digest.models.datatypes import (
    EVIDENCE_SOURCE_API,
    EVIDENCE_SOURCE_CALCULATED,
    SENTIMENT_DOWN,
    SENTIMENT_NEUTRAL,
    SENTIMENT_UP,
    VERDICTS,
    ScanResult,
    SentimentEvidence,
)
from market_digest.providers.base import SentimentScanner
from market_digest.providers.lexicon import DEFAULT_LEXICON, Lexicon, PatternRule

MAX_SAMPLES_PER_CATEGORY = 2
MAX_SAMPLES_PER_POLARITY = 8
DEFAULT_MARGIN = 1


class LexiconScanner(SentimentScanner):
    """Counts weighted regex matches for each polarity of a :class:`Lexicon`.

    Args:
        lexicon: Rule sets to apply (default :data:`DEFAULT_LEXICON`).
    """

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON) -> None:
        self.lexicon = lexicon

    # ── public API ──────────────────────────────────────────────────────────

    def scan(self, text: Optional[str]) -> ScanResult:
        """Return weighted positive/negative totals and display samples.

        Args:
            text: Text to scan. ``None`` or ``""`` yields an all-zero result.

        Returns:
            :class:`ScanResult`.
        """
        if not text:
            return ScanResult()

        positive_score, positive_groups = _tally(self.lexicon.positive, text)
        negative_score, negative_groups = _tally(self.lexicon.negative, text)

        logger.debug(f"LexiconScanner: content length {len(text)} characters")
        _log_groups("Positive", positive_score, positive_groups)
        _log_groups("Negative", negative_score, negative_groups)

        return ScanResult(
            positive_score=positive_score,
            negative_score=negative_score,
            positive_samples=_flatten(positive_groups),
            negative_samples=_flatten(negative_groups),
        )


class SentimentResolver:
    """Turns an optional explicit hint plus a lexicon scan into one verdict.

    Args:
        scanner: Scanner used for the evidence breakdown (default :class:`LexiconScanner`).
        margin: How far one polarity must lead the other before the verdict
            leaves ``"neutral"``.
    """

    def __init__(self, scanner: Optional[SentimentScanner] = None, margin: int = DEFAULT_MARGIN) -> None:
        self.scanner = scanner or LexiconScanner()
        self.margin = margin

    def resolve(
        self,
        content: Optional[str],
        explicit_hint: Optional[str] = None,
    ) -> Tuple[str, SentimentEvidence]:
        """Return ``(verdict, evidence)`` for a digest's content.

        Args:
            content: Assembled digest prose.
            explicit_hint: The digest's own ``explicit_sentiment``; takes
                unconditional precedence when it is a valid verdict.

        Returns:
            Tuple of verdict (``"up"``/``"down"``/``"neutral"``) and
            :class:`SentimentEvidence`.
        """
        if explicit_hint is not None and explicit_hint not in VERDICTS:
            logger.warning(f"SentimentResolver: ignoring unknown hint {explicit_hint!r}")
            explicit_hint = None

        result = self.scanner.scan(content)
        calculated = self._verdict_from_scores(result.positive_score, result.negative_score)

        if explicit_hint is not None:
            logger.info(
                f"SentimentResolver: using explicit sentiment {explicit_hint.upper()} "
                f"(calculated {calculated.upper()} from "
                f"+{result.positive_score}/-{result.negative_score} discarded)"
            )
            return explicit_hint, _evidence(result, EVIDENCE_SOURCE_API)

        logger.info(
            f"SentimentResolver: calculated sentiment {calculated.upper()} "
            f"(+{result.positive_score}/-{result.negative_score}, margin={self.margin})"
        )
        return calculated, _evidence(result, EVIDENCE_SOURCE_CALCULATED)

    def _verdict_from_scores(self, positive: int, negative: int) -> str:
        if positive > negative + self.margin:
            return SENTIMENT_UP
        if negative > positive + self.margin:
            return SENTIMENT_DOWN
        return SENTIMENT_NEUTRAL


# ── helpers ───────────────────────────────────────────────────────────────────

def _tally(rules: Tuple[PatternRule, ...], text: str) -> Tuple[int, Dict[str, List[str]]]:
    """Score one polarity. Returns ``(score, matches grouped by category)``.

    Groups keep first-encounter order so that display samples follow the
    order in which rules matched.
    """
    score = 0
    groups: Dict[str, List[str]] = OrderedDict()
    for rule in rules:
        matches = [m.group(0).strip() for m in rule.pattern.finditer(text)]
        if not matches:
            continue
        score += rule.weight * len(matches)
        if rule.is_strong:
            matches = [f"[STRONG x{rule.weight}] {m}" for m in matches]
        groups.setdefault(rule.name, []).extend(matches)
    return score, groups


def _flatten(groups: Dict[str, List[str]]) -> Tuple[str, ...]:
    samples = [
        f"[{category}] {match}"
        for category, matches in groups.items()
        for match in matches[:MAX_SAMPLES_PER_CATEGORY]
    ]
    return tuple(samples[:MAX_SAMPLES_PER_POLARITY])


def _evidence(result: ScanResult, source: str) -> SentimentEvidence:
    return SentimentEvidence(
        positive_score=result.positive_score,
        negative_score=result.negative_score,
        positive_samples=result.positive_samples,
        negative_samples=result.negative_samples,
        source=source,
    )


def _log_groups(label: str, score: int, groups: Dict[str, List[str]]) -> None:
    logger.debug(f"LexiconScanner: {label} indicators found: {score}")
    for category, matches in groups.items():
        logger.debug(f"  [{category}] ({len(matches)}):")
        for match in matches:
            logger.debug(f"    - {match}")
