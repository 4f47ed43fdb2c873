"""Perplexity chat-completions provider for daily market commentary.

One POST per call to ``/chat/completions`` with the market-analysis prompt
and a whitelist of news domains. Source hints are taken from the response's
``search_results`` (``{title, url}``) when present, else from the flat
``citations`` URL list.
"""

from typing import Any, Dict, List, Optional, Sequence

import requests

from market_digest.core.logger import logger
from market_digest.core.retry import with_retries
from market_digest.models.datatypes import ApiSource, GeneratedText
from market_digest.providers.base import TextGenerator

_API_URL = "https://api.perplexity.ai/chat/completions"

MARKET_PROMPT = (
    "Provide a unformatted concise but detailed analysis of the most recent cryptocurrency "
    "market developments focusing on Solana Ethereum Bitcoin Polkadot Hedera Dogecoin "
    "Coinmetro token and other major tokens from multiple sources, including price movements "
    "only if major, significant news, and prevailing market sentiment with an emphasis on "
    "foresight. Only use information that is up-to-date as of the time of this request. "
    "Focus on actionable insights for traders. Sources should be diverse and not from one "
    "source. Include citations for your sources and number them sequentially. Format the "
    "response in clear paragraphs with proper spacing. Prioritize clarity, urgency, and "
    "immediate tradable insights. Use a sharp, direct voice that cuts through noise, think "
    "financial journalism meets street-smart trading floor. Avoid academic language; speak "
    "directly to traders bottom-line interests. Highlight potential opportunities and risks "
    "in a way that feels like insider knowledge, not generic reporting. Refer to the daily "
    "market as \"the market\". Start the response with a single line "
    "\"SENTIMENT: BULLISH\", \"SENTIMENT: BEARISH\" or \"SENTIMENT: NEUTRAL\"."
)


class GenerationError(Exception):
    """The upstream generator could not produce usable text."""


class PerplexityProvider(TextGenerator):
    """Perplexity ``sonar-pro`` text generator.

    Args:
        api_key: Perplexity API key.
        model: Model name.
        domain_filter: ``search_domain_filter`` whitelist.
        temperature: Sampling temperature.
        timeout: Request timeout in seconds.
        prompt: User prompt (default :data:`MARKET_PROMPT`).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "sonar-pro",
        domain_filter: Optional[Sequence[str]] = None,
        temperature: float = 0.7,
        timeout: int = 30,
        prompt: str = MARKET_PROMPT,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.domain_filter = list(domain_filter or [])
        self.temperature = temperature
        self.timeout = timeout
        self.prompt = prompt

    def generate(self) -> GeneratedText:
        """Return generated commentary and its source hints.

        Raises:
            GenerationError: Missing API key, non-200 response or malformed body.
        """
        if not self.api_key:
            raise GenerationError("PERPLEXITY_API_KEY is not set")
        data = self._call_api()
        return parse_response(data, self.model)

    @with_retries(max_retries=3, initial_delay=1, retry_on=(requests.RequestException,))
    def _call_api(self) -> Dict[str, Any]:
        """POST the prompt. Transport errors are retried; HTTP errors are not."""
        logger.info(f"PerplexityProvider: requesting {self.model} ({len(self.domain_filter)} domains)")
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": self.prompt}],
            "temperature": self.temperature,
            "search_domain_filter": self.domain_filter,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        resp = requests.post(_API_URL, json=payload, headers=headers, timeout=self.timeout)

        if resp.status_code == 401:
            raise GenerationError("API key is invalid or not properly configured")
        if resp.status_code != 200:
            raise GenerationError(f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as exc:
            raise GenerationError(f"response is not JSON: {exc}") from exc


# ── helpers ───────────────────────────────────────────────────────────────────

def parse_response(data: Dict[str, Any], model: str) -> GeneratedText:
    """Pull message text and source hints out of a chat-completions body."""
    try:
        text = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        text = None
    if not text:
        raise GenerationError("Invalid response format from API")

    sources = _sources_from_response(data)
    logger.info(f"PerplexityProvider: received {len(text)} chars, {len(sources)} source(s)")
    return GeneratedText(text=text, sources=tuple(sources), model=data.get("model") or model)


def _sources_from_response(data: Dict[str, Any]) -> List[ApiSource]:
    results = data.get("search_results")
    if isinstance(results, list) and results:
        return [ApiSource.from_dict(r) for r in results if isinstance(r, dict) and r.get("url")]
    urls = data.get("citations")
    if isinstance(urls, list):
        return [ApiSource(url=u) for u in urls if isinstance(u, str) and u]
    return []
