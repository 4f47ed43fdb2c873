"""Post-clone environment setup helper.

Run once after creating the env and installing the package:

    python -m venv .venv
    pip install -e ".[test]"
    python setup_env.py

This script:
1. Verifies all required imports resolve correctly.
2. Checks that config.yaml loads and PERPLEXITY_API_KEY is set.
3. Prints a clear summary of what passed.
"""

import os
import sys


def verify_imports() -> None:
    print("Verifying core imports...")
    required = [
        ("requests", "requests"),
        ("yaml", "PyYAML"),
        ("dotenv", "python-dotenv"),
        ("pytest", "pytest"),
    ]
    all_ok = True
    for mod, pkg in required:
        try:
            __import__(mod)
            print(f"  [OK] {pkg}")
        except ImportError:
            print(f"  [MISSING] {pkg}  →  run: pip install {pkg}")
            all_ok = False

    if not all_ok:
        print('\nSome packages are missing. Run:  pip install -e ".[test]"')
        sys.exit(1)


def verify_pipeline_imports() -> None:
    print("\nVerifying pipeline source imports...")
    try:
        from market_digest.extraction.citations import CitationExtractor  # noqa: F401
        from market_digest.providers.perplexity import PerplexityProvider  # noqa: F401
        from market_digest.providers.sentiment import SentimentResolver  # noqa: F401
        from market_digest.pipeline.engine import DigestEngine  # noqa: F401
        print("  [OK] All pipeline modules import cleanly.")
    except Exception as exc:
        print(f"  [ERROR] Pipeline import failed: {exc}")
        sys.exit(1)


def check_config() -> None:
    print("\nChecking configuration...")
    from market_digest.core.config import load_config

    try:
        load_config()
        print("  [OK] config.yaml loads.")
    except (FileNotFoundError, ValueError) as exc:
        print(f"  [ERROR] {exc}")
        sys.exit(1)

    if os.getenv("PERPLEXITY_API_KEY"):
        print("  [OK] PERPLEXITY_API_KEY is set.")
    else:
        print(
            "  [WARN] PERPLEXITY_API_KEY is not set (add it to .env).\n"
            "         Runs will serve cached or built-in fallback content."
        )


if __name__ == "__main__":
    print("=" * 60)
    print("  Market Digest — Environment Setup Check")
    print("=" * 60)
    verify_imports()
    verify_pipeline_imports()
    check_config()
    print("\n" + "=" * 60)
    print("  Setup complete. You can now run: python run_pipeline.py")
    print("=" * 60)
