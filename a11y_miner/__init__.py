"""
GitHub Repository Miner and Accessibility Scanner for the WCAG coverage study.

This package provides:
- A rate-limited GitHub client with credential rotation
- A crawl loop that classifies web applications and detects
  accessibility testing tools, writing resumable CSV results
- Runners for axe-core and Lighthouse with WCAG level bucketing
"""

from a11y_miner.api_client import GitHubAPIClient, HttpError, MalformedResponse, TransientRateLimit
from a11y_miner.inspector import ToolUsageDetector
from a11y_miner.pipeline import CrawlerConfig, CrawlerPipeline, CrawlMode
from a11y_miner.rate_limiter import ConfigurationError, CredentialPool
from a11y_miner.search import GitHubSearch, SearchPage
from a11y_miner.storage import ResultSink

__all__ = [
    "GitHubAPIClient",
    "HttpError",
    "MalformedResponse",
    "TransientRateLimit",
    "ToolUsageDetector",
    "CrawlerConfig",
    "CrawlerPipeline",
    "CrawlMode",
    "ConfigurationError",
    "CredentialPool",
    "GitHubSearch",
    "SearchPage",
    "ResultSink",
]
