"""
Tests for citation extraction.

Covers each strategy in isolation, chain precedence, content stripping,
ordering and de-duplication, and favicon resolution.
"""

from unittest.mock import Mock

import pytest
import requests

from market_digest.extraction.citations import (
    CitationExtractor,
    InlineSourcesSectionStrategy,
    InlineUrlObjectStrategy,
    SourcesBlockStrategy,
    StructuredSourcesStrategy,
)
from market_digest.extraction.favicons import FaviconResolver
from market_digest.models.datatypes import ApiSource, Citation

SECTION_TEXT = (
    "Bitcoin rallied [1]. Ether fell [2].\n\n"
    "Sources: [1] CoinDesk - coindesk.com/markets [2] Reuters (reuters.com)"
)

URL_OBJECT_TEXT = (
    'Bitcoin up ["url": "https://www.coindesk.com/a"] and '
    "Ether flat ['url': 'https://reuters.com/b']."
)


# =============================================================================
# Individual strategies
# =============================================================================

class TestStructuredSources:

    def test_numbers_in_input_order(self):
        sources = [ApiSource(url="https://www.reuters.com/x", title="Reuters"),
                   ApiSource(url="https://cointelegraph.com/y")]
        result = StructuredSourcesStrategy().try_extract("body", sources)
        assert [c.number for c in result.citations] == [1, 2]
        assert result.citations[0].title == "Reuters"
        assert result.citations[1].title == "cointelegraph.com"
        assert result.content == "body"

    def test_missing_url_becomes_hash(self):
        result = StructuredSourcesStrategy().try_extract("", [ApiSource(url="")])
        assert result.citations[0].url == "#"
        assert result.citations[0].title == "Source 1"

    def test_no_sources(self):
        assert StructuredSourcesStrategy().try_extract("body", []) is None


class TestSourcesBlock:

    def test_numbered_lines(self, btc_text):
        text = btc_text.split("\n", 1)[1]
        result = SourcesBlockStrategy().try_extract(text, [])
        assert result.citations == (
            Citation(number=1, title="coindesk.com", url="https://coindesk.com/btc-news"),
        )
        assert result.content == "BTC is up today [1]."

    @pytest.mark.parametrize("line", [
        "[3] https://www.reuters.com/a",
        "3: https://www.reuters.com/a",
        "3. https://www.reuters.com/a",
    ])
    def test_number_styles(self, line):
        result = SourcesBlockStrategy().try_extract(f"Body [3].\n\n**Sources:**\n{line}", [])
        assert result.citations[0].number == 3
        assert result.citations[0].url == "https://www.reuters.com/a"
        assert result.citations[0].title == "reuters.com"

    def test_block_without_urls_is_not_a_match(self):
        assert SourcesBlockStrategy().try_extract(SECTION_TEXT, []) is None

    def test_word_inside_prose_is_ignored(self):
        text = "Multiple sources say BTC is up. Resources: 1. https://a.com/x"
        assert SourcesBlockStrategy().try_extract(text, []) is None

    def test_sources_inside_a_sentence_keeps_prose(self):
        text = (
            "Analysts cite two sources: ETF inflows and the halving [1]. Ether lagged behind.\n\n"
            "Sources:\n1. https://coindesk.com/a"
        )
        result = SourcesBlockStrategy().try_extract(text, [])
        assert result.content == "Analysts cite two sources: ETF inflows and the halving [1]. Ether lagged behind."
        assert [c.url for c in result.citations] == ["https://coindesk.com/a"]

    def test_last_heading_wins(self):
        text = "Sources:\nsaid BTC held [1].\n\nSources:\n1. https://coindesk.com/a"
        result = SourcesBlockStrategy().try_extract(text, [])
        assert result.content == "Sources:\nsaid BTC held [1]."
        assert len(result.citations) == 1

    def test_index_token_must_lead_the_line(self):
        text = "Body.\n\nSources:\nsee report 2 https://x.com/r"
        assert SourcesBlockStrategy().try_extract(text, []) is None


class TestInlineSourcesSection:

    def test_title_and_domain_entries(self):
        result = InlineSourcesSectionStrategy().try_extract(SECTION_TEXT, [])
        assert result.citations == (
            Citation(number=1, title="CoinDesk", url="https://coindesk.com/markets"),
            Citation(number=2, title="Reuters", url="https://reuters.com"),
        )
        assert result.content == "Bitcoin rallied [1]. Ether fell [2]."

    def test_title_defaults_to_domain(self):
        result = InlineSourcesSectionStrategy().try_extract(
            "Body [1].\nSource: [1] //www.cnbc.com/crypto", []
        )
        assert result.citations[0].url == "https://www.cnbc.com/crypto"
        assert result.citations[0].title == "cnbc.com"

    def test_explicit_url_preferred(self):
        result = InlineSourcesSectionStrategy().try_extract(
            "Body [1].\nSources: [1] Fortune.com coverage https://fortune.com/crypto/x", []
        )
        assert result.citations[0].url == "https://fortune.com/crypto/x"

    def test_entries_without_urls(self):
        assert InlineSourcesSectionStrategy().try_extract("Body.\nSources: [1] CoinDesk", []) is None

    def test_source_inside_a_sentence_keeps_prose(self):
        text = "One source: a desk trader said BTC held [1].\n\nSources: [1] CoinDesk coindesk.com/markets"
        result = InlineSourcesSectionStrategy().try_extract(text, [])
        assert result.content == "One source: a desk trader said BTC held [1]."
        assert result.citations == (
            Citation(number=1, title="CoinDesk", url="https://coindesk.com/markets"),
        )


class TestInlineUrlObjects:

    def test_sequential_numbers_and_stripping(self):
        result = InlineUrlObjectStrategy().try_extract(URL_OBJECT_TEXT, [])
        assert [(c.number, c.title, c.url) for c in result.citations] == [
            (1, "coindesk.com", "https://www.coindesk.com/a"),
            (2, "reuters.com", "https://reuters.com/b"),
        ]
        assert "url" not in result.content
        assert result.content.startswith("Bitcoin up ")

    def test_no_objects(self):
        assert InlineUrlObjectStrategy().try_extract("plain text [1]", []) is None


# =============================================================================
# Extractor chain
# =============================================================================

class TestCitationExtractor:

    def test_structured_sources_take_precedence(self, extractor, btc_text):
        sources = [{"url": "https://www.reuters.com/x", "title": "Reuters"}]
        result = extractor.extract_with_strategy(btc_text, sources)
        assert result.strategy == "structured_sources"
        assert [c.title for c in result.citations] == ["Reuters"]
        # Structured sources leave the text alone
        assert result.content == btc_text

    def test_falls_through_to_section(self, extractor):
        result = extractor.extract_with_strategy(SECTION_TEXT)
        assert result.strategy == "inline_sources_section"
        assert len(result.citations) == 2

    def test_falls_through_to_url_objects(self, extractor):
        result = extractor.extract_with_strategy(URL_OBJECT_TEXT, None)
        assert result.strategy == "inline_url_objects"

    def test_nothing_found(self, extractor):
        citations, content = extractor.extract("BTC is up [1].")
        assert citations == ()
        assert content == "BTC is up [1]."

    def test_empty_input(self, extractor):
        assert extractor.extract("", []) == ((), "")

    def test_sorted_and_deduplicated(self, extractor):
        text = (
            "Body.\n\nSources:\n"
            "2. https://b.com/x\n"
            "1. https://a.com/y\n"
            "1. https://c.com/z\n"
            "0. https://d.com/w"
        )
        citations, _ = extractor.extract(text)
        assert [(c.number, c.url) for c in citations] == [
            (1, "https://a.com/y"),
            (2, "https://b.com/x"),
        ]

    def test_favicons_attached(self, extractor, btc_text):
        citations, _ = extractor.extract(btc_text)
        assert citations[0].favicon == "https://coindesk.com/favicon.ico"
        assert citations[0].is_cited is True

    def test_hash_url_has_no_favicon(self, extractor):
        citations, _ = extractor.extract("x", [ApiSource(url="")])
        assert citations[0].favicon == ""

    def test_unsupported_source_objects_ignored(self, extractor):
        citations, _ = extractor.extract("x", [42, {"url": "https://a.com/1"}])
        assert [c.url for c in citations] == ["https://a.com/1"]


# =============================================================================
# Favicon resolver
# =============================================================================

class TestFaviconResolver:

    def _session(self, status_for):
        session = Mock()

        def head(url, timeout, allow_redirects):
            status = status_for(url)
            if isinstance(status, Exception):
                raise status
            return Mock(status_code=status)

        session.head.side_effect = head
        return session

    def test_without_probe_no_http(self):
        session = Mock()
        resolver = FaviconResolver(probe=False, session=session)
        assert resolver.resolve("https://a.com/x") == "https://a.com/favicon.ico"
        session.head.assert_not_called()

    def test_probe_success(self):
        resolver = FaviconResolver(probe=True, session=self._session(lambda url: 200))
        assert resolver.resolve("https://a.com/x") == "https://a.com/favicon.ico"

    def test_probe_not_found(self):
        resolver = FaviconResolver(probe=True, session=self._session(lambda url: 404))
        assert resolver.resolve("https://a.com/x") == ""

    def test_probe_network_error(self):
        session = self._session(lambda url: requests.ConnectionError("down"))
        assert FaviconResolver(probe=True, session=session).resolve("https://a.com/x") == ""

    def test_resolve_many_keeps_order_and_isolates_failures(self):
        def status_for(url):
            if "b.com" in url:
                return requests.Timeout("slow")
            return 200

        resolver = FaviconResolver(probe=True, max_workers=4, session=self._session(status_for))
        icons = resolver.resolve_many(["https://a.com/1", "https://b.com/2", "#", "https://c.com/3"])
        assert icons == [
            "https://a.com/favicon.ico",
            "",
            "",
            "https://c.com/favicon.ico",
        ]

    def test_resolve_many_unexpected_error(self):
        session = Mock()
        session.head.side_effect = RuntimeError("boom")
        resolver = FaviconResolver(probe=True, session=session)
        assert resolver.resolve_many(["https://a.com/1", "https://b.com/2"]) == ["", ""]
