"""Abstract base classes for data providers."""

from abc import ABC, abstractmethod

from market_digest.models.datatypes import GeneratedText, ScanResult


class TextGenerator(ABC):
    """Abstract interface for the upstream market-commentary generator."""

    @abstractmethod
    def generate(self) -> GeneratedText:
        """
        Produce one piece of market commentary.

        Returns:
            GeneratedText: Raw prose plus any structured source hints.

        Raises:
            GenerationError: When the upstream service cannot produce usable text.
        """
        pass


class SentimentScanner(ABC):
    """Abstract interface for scoring market-commentary text."""

    @abstractmethod
    def scan(self, text: str) -> ScanResult:
        """
        Tally positive and negative indicators in a text.

        Args:
            text (str): The text to analyze. Empty or None yields an all-zero result.

        Returns:
            ScanResult: Weighted totals and display samples.
        """
        pass
