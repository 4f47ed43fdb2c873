"""
Shared fixtures for the market digest tests.

No test touches the network: HTTP calls are patched per test and the
favicon resolver runs with probing disabled unless a test opts in.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from market_digest.core.config import DigestSettings
from market_digest.extraction.citations import CitationExtractor
from market_digest.extraction.favicons import FaviconResolver
from market_digest.models.datatypes import GeneratedText
from market_digest.pipeline.assembler import DigestAssembler
from market_digest.providers.base import TextGenerator

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

BTC_TEXT = (
    "SENTIMENT: BULLISH\n"
    "BTC is up today [1].\n\n"
    "Sources:\n"
    "1. https://coindesk.com/btc-news"
)


@pytest.fixture
def btc_text():
    """Upstream response with a directive, one claim and a Sources block."""
    return BTC_TEXT


@pytest.fixture
def extractor():
    """Citation extractor that never probes favicons over HTTP."""
    return CitationExtractor(favicons=FaviconResolver(probe=False))


@pytest.fixture
def assembler(extractor):
    """Assembler with a frozen clock."""
    return DigestAssembler(extractor=extractor, clock=lambda: FIXED_NOW)


@pytest.fixture
def settings(tmp_path):
    """Settings writing output and cache under a temporary directory."""
    return DigestSettings(
        output_dir=str(tmp_path / "output"),
        cache_path=str(tmp_path / "output" / ".cache.db"),
        api_key="test-key",
    )


@pytest.fixture
def generator():
    """Text generator mock returning the BTC response."""
    mock = Mock(spec=TextGenerator)
    mock.generate.return_value = GeneratedText(text=BTC_TEXT, model="sonar-pro")
    return mock


@pytest.fixture
def fixed_now():
    """The instant stamped by the ``assembler`` fixture."""
    return FIXED_NOW
