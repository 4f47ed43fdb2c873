"""Crypto market digest entry point.

Usage:
    python run_pipeline.py                     # cached digest if fresh, else refresh
    python run_pipeline.py --force             # always call the API
    python run_pipeline.py --input raw.txt     # assemble a saved response offline
    python run_pipeline.py --history 10        # list the last 10 archived digests

Loads config.yaml, runs DigestEngine, and reports success/failure to stdout
and the digest log.
"""

import argparse
import json
import sys
from typing import List, Optional, Sequence, Tuple

from dotenv import load_dotenv

load_dotenv()  # must precede market_digest imports so env vars are available at module load

from market_digest.core.config import load_config, settings_from_config  # noqa: E402
from market_digest.core.logger import logger  # noqa: E402
from market_digest.models.datatypes import ApiSource  # noqa: E402
from market_digest.pipeline.engine import MAX_HISTORICAL_DIGESTS, DigestEngine  # noqa: E402
from market_digest.providers.perplexity import parse_response  # noqa: E402


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the daily crypto market digest.")
    parser.add_argument("--force", action="store_true", help="ignore a fresh cached digest")
    parser.add_argument(
        "--input",
        metavar="FILE",
        help="raw upstream text (or a chat-completions JSON body) to assemble offline",
    )
    parser.add_argument(
        "--history",
        type=int,
        nargs="?",
        const=MAX_HISTORICAL_DIGESTS,
        metavar="N",
        help="list the N most recent archived digests and exit",
    )
    parser.add_argument("--config", default="config.yaml", help="path to config.yaml")
    return parser.parse_args(argv)


def _read_input(path: str) -> Tuple[str, Optional[Sequence[ApiSource]]]:
    """Return ``(text, sources)`` from a plain text file or a saved API response."""
    with open(path, encoding="utf-8") as f:
        raw = f.read()
    if path.endswith(".json"):
        generated = parse_response(json.loads(raw), model="")
        return generated.text, generated.sources
    return raw, None


def _print_history(engine: DigestEngine, limit: int) -> None:
    digests = engine.history(limit)
    if not digests:
        print("No archived digests.")
        return
    for digest in digests:
        lead = digest.content.split("\n", 1)[0][:80]
        print(f"{digest.timestamp}  {len(digest.citations)} citation(s)  {lead}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the digest pipeline. Returns 0 on success, 1 on failure."""
    args = _parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"run_pipeline: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    settings = settings_from_config(config)

    try:
        engine = DigestEngine(settings)
        if args.history is not None:
            _print_history(engine, args.history)
            return 0
        if args.input:
            text, sources = _read_input(args.input)
            result = engine.run_from_text(text, sources)
        else:
            result = engine.run(force=args.force)
    except Exception as exc:
        logger.error(f"run_pipeline: DigestEngine raised: {exc}", exc_info=True)
        print(f"ERROR: pipeline failed — {exc}", file=sys.stderr)
        return 1

    status = "FALLBACK" if result.used_fallback else "SUCCESS"
    print(
        f"{status}: {result.source} digest, sentiment={result.sentiment}, "
        f"{len(result.digest.citations)} citation(s) written to {result.output_path}"
    )
    logger.info(f"run_pipeline: completed — {result.source} digest → {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
