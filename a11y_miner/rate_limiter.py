"""
Rate limiter for GitHub API requests.

Keeps a pool of credentials with the last known quota of each one and
rotates between them before any single token runs dry.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

TOKEN_ENV_PREFIX = "TOKEN_"
MAX_TOKEN_VARIABLES = 10
FALLBACK_TOKEN_ENV = "GITHUB_TOKEN"


class ConfigurationError(Exception):
    """Raised when the process environment cannot support a crawl."""


@dataclass
class RateLimitStatus:
    """Current rate limit status."""
    remaining: Optional[int]
    limit: Optional[int]
    reset_at: Optional[int]  # Unix timestamp

    @classmethod
    def from_response(cls, response: requests.Response) -> "RateLimitStatus":
        """
        Extract rate limit info from GitHub API response headers.

        Missing headers stay unknown instead of being read as zero.
        """
        return cls(
            remaining=_int_header(response, "X-RateLimit-Remaining"),
            limit=_int_header(response, "X-RateLimit-Limit"),
            reset_at=_int_header(response, "X-RateLimit-Reset"),
        )


def _int_header(response: requests.Response, name: str) -> Optional[int]:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CredentialPool:
    """
    Ordered pool of GitHub tokens with per-token quota tracking.

    The active index always points at a token whose remaining quota is
    unknown or positive, unless every token is exhausted. Rotation is
    round-robin: the next candidate is the active index + 1, scanning
    forward until a token with positive or unknown quota is found.
    """

    def __init__(
        self,
        tokens: List[str],
        reset_margin: int = 5,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pool.

        Args:
            tokens: Opaque token values, in rotation order
            reset_margin: Seconds added to the reset time before retrying
            sleep: Sleep function (injectable for tests)
            clock: Wall clock returning Unix seconds (injectable for tests)
        """
        if not tokens:
            raise ConfigurationError("At least one GitHub token is required")
        self.tokens = list(tokens)
        self.index = 0
        self.remaining: List[Optional[int]] = [None] * len(self.tokens)
        self.reset_at: List[Optional[int]] = [None] * len(self.tokens)
        self.reset_margin = reset_margin
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **kwargs) -> "CredentialPool":
        """
        Load tokens from TOKEN_1 .. TOKEN_10, falling back to GITHUB_TOKEN.

        Raises:
            ConfigurationError: if no token is configured
        """
        environ = os.environ if environ is None else environ
        tokens = [
            environ.get(f"{TOKEN_ENV_PREFIX}{i}")
            for i in range(1, MAX_TOKEN_VARIABLES + 1)
        ]
        tokens = [token for token in tokens if token]
        if not tokens and environ.get(FALLBACK_TOKEN_ENV):
            tokens = [environ[FALLBACK_TOKEN_ENV]]
        if not tokens:
            raise ConfigurationError(
                "No GitHub token found in the environment "
                f"({TOKEN_ENV_PREFIX}1..{TOKEN_ENV_PREFIX}{MAX_TOKEN_VARIABLES} or {FALLBACK_TOKEN_ENV})"
            )
        logger.info("Loaded %d GitHub token(s)", len(tokens))
        return cls(tokens, **kwargs)

    def __len__(self) -> int:
        return len(self.tokens)

    @property
    def current_token(self) -> str:
        return self.tokens[self.index]

    def record(self, status: RateLimitStatus) -> None:
        """Record the quota reported for the active token."""
        if status.remaining is not None:
            self.remaining[self.index] = status.remaining
        if status.reset_at is not None:
            self.reset_at[self.index] = status.reset_at

    def mark_exhausted(self, reset_at: Optional[int] = None) -> None:
        """Mark the active token as out of quota."""
        self.remaining[self.index] = 0
        if reset_at is not None:
            self.reset_at[self.index] = reset_at

    def has_quota(self, index: int) -> bool:
        remaining = self.remaining[index]
        return remaining is None or remaining > 0

    def all_exhausted(self) -> bool:
        return not any(self.has_quota(i) for i in range(len(self.tokens)))

    def next_available(self) -> Optional[int]:
        """Index of the next other token with positive or unknown quota."""
        size = len(self.tokens)
        for step in range(1, size):
            candidate = (self.index + step) % size
            if self.has_quota(candidate):
                return candidate
        return None

    def rotate(self) -> bool:
        """Switch to the next usable token. Returns True if switched."""
        candidate = self.next_available()
        if candidate is None:
            return False
        self.index = candidate
        logger.info("[TOKEN] Switched to token index %d", self.index)
        return True

    def rotate_if_needed(self, floor: int) -> bool:
        """Rotate when the active token's known quota is under ``floor``."""
        remaining = self.remaining[self.index]
        if remaining is None or remaining >= floor:
            return False
        return self.rotate()

    def earliest_reset(self) -> Optional[int]:
        resets = [reset for reset in self.reset_at if reset is not None]
        return min(resets) if resets else None

    def wait_for_reset(self, default_wait: float = 60.0) -> float:
        """
        Sleep until the earliest reported reset plus the safety margin.

        Quotas whose reset time has passed are forgotten afterwards so the
        tokens become candidates again. Returns the number of seconds slept.
        """
        earliest = self.earliest_reset()
        if earliest is None:
            wait_seconds = default_wait
        else:
            wait_seconds = max(earliest - self._clock(), 0) + self.reset_margin

        logger.warning("[RATE-LIMIT] All tokens exhausted. Waiting %.0f seconds...", wait_seconds)
        self._sleep(wait_seconds)

        now = self._clock()
        for i, reset in enumerate(self.reset_at):
            if reset is None or reset <= now:
                self.remaining[i] = None
                self.reset_at[i] = None
        return wait_seconds
