"""
Debug dump — assembles a saved upstream response and writes what each stage
saw to output/digest_debug.json: the explicit sentiment directive, which
citation strategy matched, the citations, the normalized content and the
full sentiment evidence.

Nothing is cached and no API call is made.

Run with:
    PYTHONPATH=. python scripts/dump_digest_debug.py path/to/raw_response.txt
"""

import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from market_digest.extraction.citations import CitationExtractor  # noqa: E402
from market_digest.extraction.normalizer import (  # noqa: E402
    extract_explicit_sentiment,
    find_citation_references,
    normalize,
)
from market_digest.providers.sentiment import SentimentResolver  # noqa: E402

OUTPUT_PATH = os.path.join("output", "digest_debug.json")


def dump(raw_text: str) -> dict:
    explicit, text = extract_explicit_sentiment(raw_text)
    extraction = CitationExtractor().extract_with_strategy(text)
    content = normalize(extraction.content)
    verdict, evidence = SentimentResolver().resolve(content, explicit)

    return {
        "explicit_sentiment": explicit,
        "strategy": extraction.strategy,
        "references_in_text": find_citation_references(text),
        "citations": [c.to_record() for c in extraction.citations],
        "content": content,
        "sentiment": verdict,
        "evidence": evidence.to_dict(),
    }


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python scripts/dump_digest_debug.py <raw_response.txt>")
        return 1

    with open(sys.argv[1], encoding="utf-8") as f:
        result = dump(f.read())

    os.makedirs(os.path.dirname(OUTPUT_PATH), exist_ok=True)
    with open(OUTPUT_PATH, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)

    print(f"strategy:  {result['strategy']}")
    print(f"citations: {len(result['citations'])}  references: {result['references_in_text']}")
    print(f"sentiment: {result['sentiment']} ({result['evidence']['source']}, "
          f"+{result['evidence']['positive']}/-{result['evidence']['negative']})")
    print(f"Saved → {OUTPUT_PATH}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
