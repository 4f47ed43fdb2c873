"""
Tests for the lexicon scanner and sentiment resolver.

Validates weighted scoring, strong-rule weighting, sample grouping and caps,
the neutral margin, and explicit-hint precedence.
"""

from unittest.mock import Mock

import pytest

from market_digest.models.datatypes import (
    EVIDENCE_SOURCE_API,
    EVIDENCE_SOURCE_CALCULATED,
    SENTIMENT_DOWN,
    SENTIMENT_NEUTRAL,
    SENTIMENT_UP,
    ScanResult,
)
from market_digest.providers.lexicon import STRONG_WEIGHT, Lexicon, PatternRule
from market_digest.providers.sentiment import (
    MAX_SAMPLES_PER_CATEGORY,
    MAX_SAMPLES_PER_POLARITY,
    LexiconScanner,
    SentimentResolver,
)


def _scanner_returning(positive, negative):
    scanner = Mock()
    scanner.scan.return_value = ScanResult(positive_score=positive, negative_score=negative)
    return scanner


# =============================================================================
# Scanner
# =============================================================================

class TestLexiconScanner:

    def test_empty_text_scores_zero(self):
        scanner = LexiconScanner()
        assert scanner.scan("") == ScanResult()
        assert scanner.scan(None) == ScanResult()

    def test_default_lexicon_positive(self):
        result = LexiconScanner().scan("The recovery gained momentum.")
        assert result.positive_score == 2
        assert result.negative_score == 0
        assert result.positive_samples == (
            "[General positive momentum] recovery",
            "[General positive momentum] momentum",
        )

    def test_default_lexicon_negative(self):
        result = LexiconScanner().scan("Heavy selloff pressure.")
        assert result.positive_score == 0
        assert result.negative_score == 2

    def test_case_insensitive(self):
        assert LexiconScanner().scan("MOMENTUM").positive_score == 1

    def test_strong_rule_weight_and_prefix(self):
        lexicon = Lexicon(
            positive=(PatternRule.compile("Moon", r"\bmoon\b", STRONG_WEIGHT),),
            negative=(),
        )
        result = LexiconScanner(lexicon).scan("moon moon")
        assert result.positive_score == 2 * STRONG_WEIGHT
        assert result.positive_samples[0] == f"[Moon] [STRONG x{STRONG_WEIGHT}] moon"

    def test_default_bull_market_counts_both_tiers(self):
        result = LexiconScanner().scan("analysts call this a bull market")
        # "Bullish sentiment" (1) plus the strong "Bull market" rule (3)
        assert result.positive_score == 1 + STRONG_WEIGHT
        assert "[Bull market] [STRONG x3] bull market" in result.positive_samples

    def test_samples_capped_per_category(self):
        lexicon = Lexicon(positive=(PatternRule.compile("X", r"\bx\b"),), negative=())
        result = LexiconScanner(lexicon).scan("x x x x")
        assert result.positive_score == 4
        assert len(result.positive_samples) == MAX_SAMPLES_PER_CATEGORY

    def test_samples_capped_per_polarity(self):
        rules = tuple(PatternRule.compile(f"R{i}", rf"\bw{i}\b") for i in range(5))
        lexicon = Lexicon(positive=rules, negative=())
        text = " ".join(f"w{i} w{i}" for i in range(5))
        result = LexiconScanner(lexicon).scan(text)
        assert result.positive_score == 10
        assert len(result.positive_samples) == MAX_SAMPLES_PER_POLARITY
        assert result.positive_samples[0] == "[R0] w0"

    def test_rules_count_independently(self):
        lexicon = Lexicon(
            positive=(
                PatternRule.compile("A", r"\brally\b"),
                PatternRule.compile("B", r"\bbig rally\b"),
            ),
            negative=(),
        )
        assert LexiconScanner(lexicon).scan("a big rally").positive_score == 2


# =============================================================================
# Resolver
# =============================================================================

class TestSentimentResolver:

    @pytest.mark.parametrize("positive,negative,expected", [
        (3, 3, SENTIMENT_NEUTRAL),
        (5, 3, SENTIMENT_UP),
        (3, 5, SENTIMENT_DOWN),
        (4, 3, SENTIMENT_NEUTRAL),
        (3, 4, SENTIMENT_NEUTRAL),
        (0, 0, SENTIMENT_NEUTRAL),
    ])
    def test_margin_thresholds(self, positive, negative, expected):
        resolver = SentimentResolver(scanner=_scanner_returning(positive, negative))
        verdict, evidence = resolver.resolve("text")
        assert verdict == expected
        assert evidence.source == EVIDENCE_SOURCE_CALCULATED
        assert (evidence.positive_score, evidence.negative_score) == (positive, negative)

    def test_custom_margin(self):
        resolver = SentimentResolver(scanner=_scanner_returning(4, 3), margin=0)
        assert resolver.resolve("text")[0] == SENTIMENT_UP

    def test_explicit_hint_wins(self):
        resolver = SentimentResolver(scanner=_scanner_returning(0, 9))
        verdict, evidence = resolver.resolve("text", SENTIMENT_UP)
        assert verdict == SENTIMENT_UP
        assert evidence.source == EVIDENCE_SOURCE_API
        assert evidence.negative_score == 9

    def test_scanner_runs_even_with_hint(self):
        scanner = _scanner_returning(1, 1)
        SentimentResolver(scanner=scanner).resolve("some text", SENTIMENT_DOWN)
        scanner.scan.assert_called_once_with("some text")

    def test_unknown_hint_ignored(self):
        verdict, evidence = SentimentResolver().resolve("", "sideways")
        assert verdict == SENTIMENT_NEUTRAL
        assert evidence.source == EVIDENCE_SOURCE_CALCULATED

    def test_empty_content_is_neutral(self):
        verdict, evidence = SentimentResolver().resolve("")
        assert verdict == SENTIMENT_NEUTRAL
        assert evidence.positive_score == evidence.negative_score == 0

    def test_real_text_end_to_end(self):
        verdict, _ = SentimentResolver().resolve("Heavy selloff pressure after the correction.")
        assert verdict == SENTIMENT_DOWN

    def test_evidence_dict_shape(self):
        _, evidence = SentimentResolver().resolve("The recovery gained momentum.")
        data = evidence.to_dict()
        assert data["positive"] == 2
        assert data["negative"] == 0
        assert data["source"] == "calculated"
        assert data["matches"]["negative"] == []
