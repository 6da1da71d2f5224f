"""
Crawler pipeline orchestrator.

Drives the crawl from GitHub search to CSV rows:
query → paginated repository nodes → processed-set check → classifier
gate → tool detection → batch → CSV + processed-set.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set

from models import (
    MinedRepository,
    RepositoryDescriptor,
    NO_TOOL_CSV_HEADER,
    TOOL_CSV_HEADER,
)
from repository_classifier import RepositoryClassifier
from a11y_miner.api_client import GitHubAPIClient, TransientRateLimit
from a11y_miner.inspector import ToolUsageDetector
from a11y_miner.search import GitHubSearch, SearchPage
from a11y_miner.storage import ResultSink
from a11y_miner import tool_catalog

logger = logging.getLogger(__name__)


class CrawlMode(str, Enum):
    """Which repositories end up in the CSV."""
    WITH_TOOLS = "with-tools"  # web applications using at least one catalog tool
    WITHOUT_TOOLS = "without-tools"  # popular repositories using none


DEFAULT_WEB_APP_QUERIES = [
    "topic:web-app stars:>50",
    "topic:webapp stars:>50",
    "topic:web-application stars:>50",
    "topic:dashboard stars:>50",
    "topic:saas stars:>50",
    "topic:ecommerce stars:>50",
    "topic:pwa stars:>50",
    "web application in:description stars:>100",
]

DEFAULT_POPULAR_QUERIES = ["stars:>1000", "stars:500..1000"]


@dataclass
class CrawlerConfig:
    """Configuration for the crawler."""
    queries: List[str] = None  # Defaults depend on mode
    mode: CrawlMode = CrawlMode.WITH_TOOLS
    sort: str = "sort:stars-desc"
    per_page: int = 100
    max_pages_per_query: int = 10
    batch_size: int = 10
    repo_delay: float = 0.2
    page_delay: float = 1.0
    rate_limit_backoff: float = 60.0
    error_backoff: float = 10.0
    max_page_attempts: int = 3
    max_run_seconds: Optional[float] = None
    output_csv: str = None
    processed_file: str = None
    fetch_readme: bool = True
    use_classifier: bool = None

    def __post_init__(self):
        self.mode = CrawlMode(self.mode)
        with_tools = self.mode == CrawlMode.WITH_TOOLS
        if self.queries is None:
            self.queries = list(DEFAULT_WEB_APP_QUERIES if with_tools else DEFAULT_POPULAR_QUERIES)
        if self.output_csv is None:
            self.output_csv = (
                "repositorios_com_ferramentas.csv" if with_tools else "repositorios_sem_ferramentas.csv"
            )
        if self.processed_file is None:
            self.processed_file = "processed_repos.json" if with_tools else "processed_repos_no_tool.json"
        if self.use_classifier is None:
            self.use_classifier = with_tools
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @property
    def csv_header(self) -> List[str]:
        return TOOL_CSV_HEADER if self.mode == CrawlMode.WITH_TOOLS else NO_TOOL_CSV_HEADER


@dataclass
class CrawlStats:
    """Counters reported in progress summaries."""
    pages: int = 0
    analyzed: int = 0
    saved: int = 0
    skipped_processed: int = 0
    skipped_library: int = 0
    skipped_not_web_app: int = 0
    skipped_by_mode: int = 0
    errors: int = 0

    @property
    def skipped(self) -> int:
        return (
            self.skipped_processed
            + self.skipped_library
            + self.skipped_not_web_app
            + self.skipped_by_mode
        )

    def summary(self) -> str:
        return (
            f"pages={self.pages} analyzed={self.analyzed} saved={self.saved} "
            f"skipped={self.skipped} (processed={self.skipped_processed}, "
            f"library={self.skipped_library}, not_web_app={self.skipped_not_web_app}, "
            f"mode={self.skipped_by_mode}) errors={self.errors}"
        )


@dataclass
class CrawlContext:
    """Mutable crawl state owned by the single control thread."""
    processed: Set[str]
    batch: List[MinedRepository] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)
    query_index: int = 0
    cursor: Optional[str] = None
    page_count: int = 0
    deadline: Optional[float] = None


class CrawlerPipeline:
    """
    Main crawl loop.

    Iterates queries and cursor pages, evaluates every unseen repository
    and flushes accepted records in batches. A record is durable only once
    its batch has been flushed.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        client: Optional[GitHubAPIClient] = None,
        search: Optional[GitHubSearch] = None,
        classifier: Optional[RepositoryClassifier] = None,
        detector: Optional[ToolUsageDetector] = None,
        sink: Optional[ResultSink] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize crawler pipeline.

        Args:
            config: CrawlerConfig with settings
            client: Shared API client (required unless search and detector are given)
            search: GitHubSearch instance
            classifier: RepositoryClassifier instance
            detector: ToolUsageDetector instance
            sink: ResultSink instance
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock used for the run deadline
        """
        self.config = config
        self.client = client
        if (search is None or detector is None) and client is None:
            raise ValueError("An API client is required to build search and detector")

        self.search = search or GitHubSearch(client, per_page=config.per_page)
        self.detector = detector or ToolUsageDetector(client, sleep=sleep)
        self.classifier = classifier or RepositoryClassifier()
        self.sink = sink or ResultSink(config.output_csv, config.processed_file, config.csv_header)
        self._sleep = sleep
        self._clock = clock

    def run(self) -> CrawlStats:
        """
        Run every query to exhaustion (or until the deadline).

        Returns:
            CrawlStats for this run
        """
        context = CrawlContext(processed=self.sink.load_processed_set())
        if self.config.max_run_seconds:
            context.deadline = self._clock() + self.config.max_run_seconds

        try:
            for index, query in enumerate(self.config.queries):
                if self._deadline_reached(context):
                    logger.warning("Run time limit reached; stopping before query %r", query)
                    break
                context.query_index = index
                self.crawl_query(query, context)
        finally:
            self.flush(context)
            self.persist_processed(context)

        logger.info("Crawl finished: %s", context.stats.summary())
        return context.stats

    def crawl_query(self, query: str, context: CrawlContext) -> None:
        """Paginate one query until no next page, page cap or deadline."""
        full_query = f"{query} {self.config.sort}".strip()
        logger.info("Crawling query: %s", full_query)

        context.cursor = None
        context.page_count = 0

        while context.page_count < self.config.max_pages_per_query:
            if self._deadline_reached(context):
                return

            page = self._fetch_page_with_retry(full_query, context)
            if page is None:
                logger.error("[ERROR] Giving up on query %r after repeated failures", full_query)
                return

            context.page_count += 1
            context.stats.pages += 1
            self.process_page(page, context)
            self.persist_processed(context)
            logger.info("Progress: %s", context.stats.summary())

            if not page.has_next_page or not page.end_cursor:
                return
            context.cursor = page.end_cursor
            if self.config.page_delay:
                self._sleep(self.config.page_delay)

    def _fetch_page_with_retry(self, query: str, context: CrawlContext) -> Optional[SearchPage]:
        """Fetch the page at the current cursor, retrying with fixed backoffs."""
        for attempt in range(1, self.config.max_page_attempts + 1):
            try:
                return self.search.fetch_page(query, context.cursor)
            except TransientRateLimit as e:
                logger.warning(
                    "[RATE-LIMIT] Search page rate limited (attempt %d/%d), backing off %.0fs: %s",
                    attempt, self.config.max_page_attempts, self.config.rate_limit_backoff, e,
                )
                backoff = self.config.rate_limit_backoff
            except Exception as e:
                logger.error(
                    "[ERROR] Search page failed (attempt %d/%d): %s",
                    attempt, self.config.max_page_attempts, e,
                )
                context.stats.errors += 1
                backoff = self.config.error_backoff

            if attempt < self.config.max_page_attempts:
                self._sleep(backoff)
        return None

    def process_page(self, page: SearchPage, context: CrawlContext) -> None:
        """Evaluate every repository node of a page."""
        for descriptor in page.repositories:
            if self._deadline_reached(context):
                return

            if descriptor.full_name in context.processed:
                context.stats.skipped_processed += 1
                logger.debug("[SKIP] %s already processed", descriptor.full_name)
                continue

            try:
                record = self.evaluate_repository(descriptor, context.stats)
            except Exception as e:
                context.stats.errors += 1
                record = None
                logger.error("[ERROR] Error processing %s: %s", descriptor.full_name, e)

            context.processed.add(descriptor.full_name)
            if record is not None:
                context.batch.append(record)
                if len(context.batch) >= self.config.batch_size:
                    self.flush(context)
                    self.persist_processed(context)

            if self.config.repo_delay:
                self._sleep(self.config.repo_delay)

    def evaluate_repository(
        self, descriptor: RepositoryDescriptor, stats: CrawlStats
    ) -> Optional[MinedRepository]:
        """
        Process a single repository.

        Args:
            descriptor: Repository from search
            stats: Counters to update

        Returns:
            MinedRepository if it belongs in the CSV for the active mode
        """
        stats.analyzed += 1

        if self.config.use_classifier:
            if self.config.fetch_readme and self.client is not None and descriptor.readme is None:
                descriptor = descriptor.with_readme(self.client.get_readme(descriptor.full_name))

            verdict = self.classifier.classify(descriptor)
            if not verdict.accepted:
                if verdict.is_library:
                    stats.skipped_library += 1
                    logger.info("[LIBRARY] %s skipped (%s)", descriptor.full_name, verdict.reason)
                else:
                    stats.skipped_not_web_app += 1
                    logger.info("[NOT-WEB-APP] %s skipped (%s)", descriptor.full_name, verdict.reason)
                return None

        detection = self.detector.detect(descriptor.owner, descriptor.name, descriptor)
        found = tool_catalog.tool_names(detection.found_tools())

        if self.config.mode == CrawlMode.WITH_TOOLS:
            if not detection.any_found:
                stats.skipped_by_mode += 1
                logger.info("[SKIP] %s: no accessibility tools found", descriptor.full_name)
                return None
            logger.info(
                "[SAVED] %s (stars: %d) tools: %s",
                descriptor.full_name, descriptor.stars, ", ".join(found),
            )
        else:
            if detection.any_found:
                stats.skipped_by_mode += 1
                logger.info("[SKIP] %s uses tools: %s", descriptor.full_name, ", ".join(found))
                return None
            logger.info("[NO-TOOLS] %s (stars: %d)", descriptor.full_name, descriptor.stars)

        return MinedRepository(descriptor=descriptor, detection=detection)

    def flush(self, context: CrawlContext) -> int:
        """Write the pending batch to the CSV sink."""
        if not context.batch:
            return 0
        if self.config.mode == CrawlMode.WITH_TOOLS:
            rows = [record.to_tool_row() for record in context.batch]
        else:
            rows = [record.to_no_tool_row() for record in context.batch]
        written = self.sink.append(rows)
        context.stats.saved += written
        context.batch.clear()
        logger.info("Flushed %d record(s) to %s", written, self.sink.csv_path)
        return written

    def persist_processed(self, context: CrawlContext) -> None:
        """
        Save the processed set without the records still waiting in the batch.

        A pending record has no CSV row yet, so a crash before the next flush
        must leave it unprocessed for the restarted crawl.
        """
        pending = {record.descriptor.full_name for record in context.batch}
        self.sink.persist_processed_set(context.processed - pending)

    def _deadline_reached(self, context: CrawlContext) -> bool:
        return context.deadline is not None and self._clock() >= context.deadline
