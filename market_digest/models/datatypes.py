"""Data structures for the market digest pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

SENTIMENT_UP = "up"
SENTIMENT_DOWN = "down"
SENTIMENT_NEUTRAL = "neutral"
VERDICTS = (SENTIMENT_UP, SENTIMENT_DOWN, SENTIMENT_NEUTRAL)

EVIDENCE_SOURCE_API = "api"
EVIDENCE_SOURCE_CALCULATED = "calculated"


@dataclass(frozen=True)
class ApiSource:
    """
    A structured citation hint supplied by the upstream text generator.
    """
    url: str
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiSource":
        """Build from a ``{url, title}`` mapping; a missing url becomes ``""``."""
        return cls(url=str(data.get("url") or ""), title=data.get("title") or None)


@dataclass(frozen=True)
class Citation:
    """
    A numbered reference to an external source backing a claim in the digest text.
    """
    number: int
    title: str
    url: str
    is_cited: bool = True
    favicon: str = ""

    def to_record(self) -> Dict[str, Any]:
        """Persistence form (camelCase ``isCited``)."""
        return {
            "number": self.number,
            "title": self.title,
            "url": self.url,
            "isCited": self.is_cited,
            "favicon": self.favicon,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Citation":
        """Rebuild a stored citation, backfilling any missing fields."""
        try:
            number = int(data.get("number") or 0)
        except (TypeError, ValueError):
            number = 0
        return cls(
            number=number,
            title=data.get("title") or f"Source {number}",
            url=data.get("url") or "#",
            is_cited=True,
            favicon=data.get("favicon") or "",
        )


@dataclass(frozen=True)
class SentimentEvidence:
    """
    Diagnostic breakdown behind a sentiment verdict. Purely explanatory.
    """
    positive_score: int = 0
    negative_score: int = 0
    positive_samples: Tuple[str, ...] = ()
    negative_samples: Tuple[str, ...] = ()
    source: str = EVIDENCE_SOURCE_CALCULATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positive": self.positive_score,
            "negative": self.negative_score,
            "matches": {
                "positive": list(self.positive_samples),
                "negative": list(self.negative_samples),
            },
            "source": self.source,
        }


@dataclass(frozen=True)
class ScanResult:
    """
    Weighted indicator totals from one lexicon scan.

    Attributes:
        positive_score: Sum of ``weight × matches`` over positive rules.
        negative_score: Sum of ``weight × matches`` over negative rules.
        positive_samples: ``"[<category>] <match>"`` display samples, capped.
        negative_samples: Same for the negative rules.
    """
    positive_score: int = 0
    negative_score: int = 0
    positive_samples: Tuple[str, ...] = ()
    negative_samples: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GeneratedText:
    """
    Raw output of the upstream text generator.
    """
    text: str
    sources: Tuple[ApiSource, ...] = ()
    model: str = ""


@dataclass(frozen=True)
class Digest:
    """
    Structured output of one extraction pass: prose, citations, timestamp and
    the optional sentiment directive found in the upstream text.
    """
    content: str
    citations: Tuple[Citation, ...] = field(default_factory=tuple)
    timestamp: str = ""
    explicit_sentiment: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """
        Serialize to the stored-summary shape ``{content, citations, timestamp}``.

        ``explicitSentiment`` is included only when present.
        """
        record: Dict[str, Any] = {
            "content": self.content,
            "citations": [c.to_record() for c in self.citations],
            "timestamp": self.timestamp,
        }
        if self.explicit_sentiment:
            record["explicitSentiment"] = self.explicit_sentiment
        return record

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Digest":
        """
        Rebuild a Digest from a stored record.

        A non-list ``citations`` value is treated as empty, and each citation
        is normalized with :meth:`Citation.from_record`.
        """
        raw_citations = data.get("citations")
        if not isinstance(raw_citations, list):
            raw_citations = []
        citations = tuple(
            Citation.from_record(c) for c in raw_citations if isinstance(c, dict)
        )
        hint = data.get("explicitSentiment")
        return cls(
            content=data.get("content") or "",
            citations=citations,
            timestamp=data.get("timestamp") or "",
            explicit_sentiment=hint if hint in VERDICTS else None,
        )
