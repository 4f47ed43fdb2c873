"""Output validator — checks a written digest.json against the digest invariants.

Checks:
  1. Required keys present (record, sentiment, evidence, source, used_fallback)
  2. record.timestamp is ISO-8601
  3. Citation numbers positive, unique and strictly ascending
  4. Every citation has isCited = true, a non-empty title and an absolute or "#" url
  5. sentiment is one of up / down / neutral
  6. evidence.source is "api" or "calculated"

Usage:
    python -m market_digest.pipeline.validator output/digest.json
"""

import json
import sys
from datetime import datetime
from typing import Any, List, Tuple

from market_digest.core.domains import is_absolute_url
from market_digest.models.datatypes import EVIDENCE_SOURCE_API, EVIDENCE_SOURCE_CALCULATED, VERDICTS

_REQUIRED_KEYS = ["record", "sentiment", "evidence", "source", "used_fallback"]
_REQUIRED_RECORD_KEYS = ["content", "citations", "timestamp"]
_EVIDENCE_SOURCES = (EVIDENCE_SOURCE_API, EVIDENCE_SOURCE_CALCULATED)


def validate(json_path: str) -> Tuple[bool, List[str]]:
    """Run all validation checks against json_path.

    Args:
        json_path: Absolute or relative path to ``digest.json``.

    Returns:
        Tuple of ``(passed: bool, messages: list[str])``.
        ``messages`` contains PASS/FAIL lines for each check.
    """
    # ── load ──────────────────────────────────────────────────────────────────
    try:
        with open(json_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return False, [f"FAIL  file not found: {json_path}"]
    except (OSError, json.JSONDecodeError) as exc:
        return False, [f"FAIL  could not read JSON: {exc}"]

    if not isinstance(data, dict):
        return False, ["FAIL  top-level value is not an object"]

    # ── check 1: key presence ─────────────────────────────────────────────────
    missing = [k for k in _REQUIRED_KEYS if k not in data]
    record = data.get("record")
    if not isinstance(record, dict):
        missing.append("record (object)")
    else:
        missing.extend(f"record.{k}" for k in _REQUIRED_RECORD_KEYS if k not in record)
    if missing:
        return False, [f"FAIL  missing keys: {missing}"]

    messages: List[str] = ["PASS  required keys present"]
    checks = [
        _check_timestamp(record.get("timestamp")),
        _check_citations(record.get("citations")),
        _check_sentiment(data.get("sentiment")),
        _check_evidence(data.get("evidence")),
    ]
    passed = True
    for ok, message in checks:
        messages.append(message)
        passed = passed and ok
    return passed, messages


# ── checks ────────────────────────────────────────────────────────────────────

def _check_timestamp(timestamp: Any) -> Tuple[bool, str]:
    try:
        datetime.fromisoformat(str(timestamp))
    except ValueError:
        return False, f"FAIL  timestamp is not ISO-8601: {timestamp!r}"
    return True, f"PASS  timestamp = {timestamp}"


def _check_citations(citations: Any) -> Tuple[bool, str]:
    if not isinstance(citations, list):
        return False, "FAIL  citations is not a list"

    problems: List[str] = []
    previous = 0
    for i, citation in enumerate(citations):
        if not isinstance(citation, dict):
            problems.append(f"#{i}: not an object")
            continue
        number = citation.get("number")
        if not isinstance(number, int) or number <= previous:
            problems.append(f"#{i}: number {number!r} not ascending after {previous}")
        else:
            previous = number
        if citation.get("isCited") is not True:
            problems.append(f"#{i}: isCited is not true")
        if not citation.get("title"):
            problems.append(f"#{i}: empty title")
        url = citation.get("url")
        if url != "#" and not (isinstance(url, str) and is_absolute_url(url)):
            problems.append(f"#{i}: url {url!r} is neither absolute nor '#'")

    if problems:
        return False, f"FAIL  {len(problems)} citation problem(s): {problems[:3]}"
    return True, f"PASS  {len(citations)} citation(s), numbers strictly ascending"


def _check_sentiment(sentiment: Any) -> Tuple[bool, str]:
    if sentiment in VERDICTS:
        return True, f"PASS  sentiment = {sentiment}"
    return False, f"FAIL  sentiment {sentiment!r} not in {list(VERDICTS)}"


def _check_evidence(evidence: Any) -> Tuple[bool, str]:
    if not isinstance(evidence, dict):
        return False, "FAIL  evidence is not an object"
    source = evidence.get("source")
    if source not in _EVIDENCE_SOURCES:
        return False, f"FAIL  evidence source {source!r} not in {list(_EVIDENCE_SOURCES)}"
    for key in ("positive", "negative"):
        value = evidence.get(key)
        if not isinstance(value, int) or value < 0:
            return False, f"FAIL  evidence {key} score {value!r} is not a non-negative integer"
    return True, f"PASS  evidence source = {source}"


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python -m market_digest.pipeline.validator <path_to_digest_json>")
        return 1
    json_path = sys.argv[1]
    passed, messages = validate(json_path)
    for msg in messages:
        print(msg)
    if passed:
        print("\nVALIDATION PASSED ✓")
        return 0
    else:
        print("\nVALIDATION FAILED ✗")
        return 1


if __name__ == "__main__":
    sys.exit(main())
