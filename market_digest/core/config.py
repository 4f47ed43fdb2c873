"""Configuration module for loading project settings and environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Whitelisted crypto news sources passed to the search API
DEFAULT_DOMAIN_FILTER = [
    "coinmetro.com",
    "reuters.com",
    "coingecko.com",
    "coindesk.com",
    "cointelegraph.com",
    "x.com",
    "cnbc.com",
    "fortune.com",
    "reddit.com",
    "finance.yahoo.com",
]


def load_config(config_path: str | Path = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from the specified YAML file.

    Args:
        config_path (str | Path): Path to the configuration file. Defaults to "config.yaml".

    Returns:
        Dict[str, Any]: A dictionary containing the configuration settings.
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    with open(config_file, "r", encoding="utf-8") as file:
        config_data = yaml.safe_load(file)

    if not config_data:
        raise ValueError(f"Configuration file {config_path} is empty or invalid.")

    return config_data


@dataclass
class DigestSettings:
    """Typed view over the parsed ``config.yaml`` dict."""
    output_dir: str = "output"
    cache_path: str = "output/.cache.db"
    cache_max_age_hours: float = 6.0
    model: str = "sonar-pro"
    temperature: float = 0.7
    timeout_seconds: int = 30
    domain_filter: List[str] = field(default_factory=lambda: list(DEFAULT_DOMAIN_FILTER))
    probe_favicons: bool = False
    favicon_workers: int = 8
    favicon_timeout_seconds: float = 3.0
    sentiment_margin: int = 1
    api_key: str = ""


def settings_from_config(config: Dict[str, Any]) -> DigestSettings:
    """
    Build :class:`DigestSettings` from a config dict, filling gaps with defaults.

    The Perplexity API key is read from ``PERPLEXITY_API_KEY`` and never from
    the YAML file.

    Args:
        config (Dict[str, Any]): Parsed configuration.

    Returns:
        DigestSettings: Settings with defaults applied.
    """
    defaults = DigestSettings()
    perplexity = config.get("perplexity") or {}
    favicons = config.get("favicons") or {}
    sentiment = config.get("sentiment") or {}

    output_dir = config.get("output_dir", defaults.output_dir)
    return DigestSettings(
        output_dir=output_dir,
        cache_path=config.get("cache_path", os.path.join(output_dir, ".cache.db")),
        cache_max_age_hours=float(config.get("cache_max_age_hours", defaults.cache_max_age_hours)),
        model=perplexity.get("model", defaults.model),
        temperature=float(perplexity.get("temperature", defaults.temperature)),
        timeout_seconds=int(perplexity.get("timeout_seconds", defaults.timeout_seconds)),
        domain_filter=list(perplexity.get("domain_filter") or DEFAULT_DOMAIN_FILTER),
        probe_favicons=bool(favicons.get("probe", defaults.probe_favicons)),
        favicon_workers=int(favicons.get("max_workers", defaults.favicon_workers)),
        favicon_timeout_seconds=float(favicons.get("timeout_seconds", defaults.favicon_timeout_seconds)),
        sentiment_margin=int(sentiment.get("margin", defaults.sentiment_margin)),
        api_key=os.getenv("PERPLEXITY_API_KEY", ""),
    )
