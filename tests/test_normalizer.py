"""
Tests for the sentiment directive, content normalization and inline
reference detection.
"""

import pytest

from market_digest.extraction.normalizer import (
    extract_explicit_sentiment,
    find_citation_references,
    normalize,
)


class TestExplicitSentiment:

    @pytest.mark.parametrize("line,expected", [
        ("SENTIMENT: BULLISH", "up"),
        ("SENTIMENT: BEARISH", "down"),
        ("SENTIMENT: NEUTRAL", "neutral"),
        ("sentiment:bullish", "up"),
    ])
    def test_directive_mapped(self, line, expected):
        verdict, rest = extract_explicit_sentiment(f"{line}\n\nMarkets moved.")
        assert verdict == expected
        assert rest == "Markets moved."

    def test_no_directive(self):
        assert extract_explicit_sentiment("Markets moved.") == (None, "Markets moved.")

    def test_directive_must_lead(self):
        verdict, rest = extract_explicit_sentiment("Intro\nSENTIMENT: BULLISH")
        assert verdict is None
        assert rest == "Intro\nSENTIMENT: BULLISH"

    def test_unknown_label_not_a_directive(self):
        assert extract_explicit_sentiment("SENTIMENT: MIXED\nx")[0] is None

    @pytest.mark.parametrize("text", [
        "SENTIMENT: BULLISHNESS abounds\nBTC up",
        "SENTIMENT: BEARISH traders took profits\nETH down",
    ])
    def test_label_must_end_the_line(self, text):
        assert extract_explicit_sentiment(text) == (None, text)

    def test_directive_alone(self):
        assert extract_explicit_sentiment("SENTIMENT: NEUTRAL") == ("neutral", "")


class TestNormalize:

    def test_bold_and_ordinals_removed(self):
        text = "**Bitcoin** holds [1].\n\n\n\n1. First point\n2. Second point"
        assert normalize(text) == "Bitcoin holds [1].\n\nFirst point\nSecond point"

    def test_single_newlines_preserved(self):
        assert normalize("a\nb") == "a\nb"

    def test_decimal_numbers_untouched(self):
        assert normalize("BTC rose 2.5% today") == "BTC rose 2.5% today"

    def test_markers_preserved(self):
        assert normalize("ETH [2] and SOL [3]") == "ETH [2] and SOL [3]"

    @pytest.mark.parametrize("text", [
        "  1. Intro\n\n\n2. 3. Body",
        "**1. Lead**\n\n\n\nTail  ",
        "1.\t**2. x**",
        "",
        "\n\n\n",
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    def test_none_is_empty(self):
        assert normalize(None) == ""


class TestCitationReferences:

    def test_unique_in_encounter_order(self):
        assert find_citation_references("a [2] b [1] c [2] d [0]") == [2, 1]

    def test_none(self):
        assert find_citation_references("") == []
