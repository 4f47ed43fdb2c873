"""
Market sentiment lexicon.

Each rule is a named, case-insensitive regular expression. Ordinary rules
add one point per match to their polarity; strong rules (market-regime
phrases) add ``STRONG_WEIGHT`` points per match.

To add a rule:
    1. Append a ``PatternRule`` to the matching polarity tuple below.
    2. Use ``\\b`` anchors; ``.{0,N}`` gaps never cross a newline.
    3. Keep category names unique within a polarity; samples are grouped by name.

Alternate lexicons (tests, other markets, other languages) are built the same
way and passed to ``LexiconScanner(lexicon=...)``.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

STRONG_WEIGHT = 3


@dataclass(frozen=True)
class PatternRule:
    """A named regex contributing ``weight`` points per match."""
    name: str
    pattern: Pattern[str]
    weight: int = 1

    @classmethod
    def compile(cls, name: str, pattern: str, weight: int = 1) -> "PatternRule":
        return cls(name=name, pattern=re.compile(pattern, re.IGNORECASE), weight=weight)

    @property
    def is_strong(self) -> bool:
        return self.weight > 1


@dataclass(frozen=True)
class Lexicon:
    """Immutable pair of positive and negative rule sets."""
    positive: Tuple[PatternRule, ...]
    negative: Tuple[PatternRule, ...]


_ASSETS = r"\b(?:market|markets|prices?|bitcoin|btc|ethereum|eth)\b"

POSITIVE_RULES: Tuple[PatternRule, ...] = (
    PatternRule.compile(
        "Positive price movement",
        _ASSETS + r".{0,30}\b(?:up|higher|rise|rising|surge|surged|gain|gained|rally|bullish|positive)\b",
    ),
    PatternRule.compile(
        "Breaking resistance",
        r"\b(?:increase|increased|climb|climbed|break|broke).{0,15}\b(?:resistance|key level|support)\b",
    ),
    PatternRule.compile(
        "Bullish sentiment",
        r"\b(?:bull|bullish|uptrend|strength|strong|positive|optimistic|optimism)\b.{0,20}"
        r"\b(?:sentiment|outlook|perspective|trend|market)\b",
    ),
    PatternRule.compile(
        "General positive momentum",
        r"\b(?:outperform|recover|recovery|rebound|momentum)\b",
    ),
    PatternRule.compile("Bull market", r"\bbull market\b", STRONG_WEIGHT),
    PatternRule.compile("Strong buy signal", r"\bstrong buy signal\b", STRONG_WEIGHT),
    PatternRule.compile("Significant rally", r"\bsignificant rally\b", STRONG_WEIGHT),
)

NEGATIVE_RULES: Tuple[PatternRule, ...] = (
    PatternRule.compile(
        "Negative price movement",
        _ASSETS + r".{0,30}\b(?:down|lower|fall|falling|fell|drop|dropped|decline|declined|bearish|negative)\b",
    ),
    PatternRule.compile(
        "Breaking support",
        r"\b(?:drop|dropped|fall|fell|sink|sank).{0,15}\b(?:below|support|key level)\b",
    ),
    PatternRule.compile(
        "Bearish sentiment",
        r"\b(?:bear|bearish|downtrend|weakness|weak|negative|pessimistic|pessimism)\b.{0,20}"
        r"\b(?:sentiment|outlook|perspective|trend|market)\b",
    ),
    PatternRule.compile(
        "General negative pressure",
        r"\b(?:underperform|loss|selloff|pressure|correction)\b",
    ),
    PatternRule.compile("Bear market", r"\bbear market\b", STRONG_WEIGHT),
    PatternRule.compile("Strong sell signal", r"\bstrong sell signal\b", STRONG_WEIGHT),
    PatternRule.compile("Significant drop", r"\bsignificant drop\b", STRONG_WEIGHT),
)

DEFAULT_LEXICON = Lexicon(positive=POSITIVE_RULES, negative=NEGATIVE_RULES)
