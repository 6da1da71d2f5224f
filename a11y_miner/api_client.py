"""
Rate-limited GitHub API client.

Wraps REST and GraphQL calls, records quota per credential and rotates
credentials before the active one runs dry.
"""

import base64
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from a11y_miner.rate_limiter import CredentialPool, RateLimitStatus

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for GitHub API failures."""


class HttpError(APIError):
    """Non-success status other than 404."""

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(f"API error: {status_code} {message}".strip())
        self.status_code = status_code


class TransientRateLimit(APIError):
    """Quota exhausted for every credential; back off until ``reset_at``."""

    def __init__(self, reset_at: Optional[int] = None):
        super().__init__(f"Rate limit exhausted (reset at {reset_at})")
        self.reset_at = reset_at


class MalformedResponse(APIError):
    """Response body could not be used where JSON was expected."""


class GitHubAPIClient:
    """
    GitHub API client shared by search and inspection.

    Handles:
    - Credential rotation with distinct quota floors for GraphQL search
      and REST file fetches
    - Sleeping until reset when every credential is exhausted
    - Bounded retries for rate limits and network errors
    """

    BASE_URL = "https://api.github.com"
    GRAPHQL_URL = "https://api.github.com/graphql"

    SEARCH_QUOTA_FLOOR = 100
    FILE_QUOTA_FLOOR = 10

    def __init__(
        self,
        pool: CredentialPool,
        session: Optional[requests.Session] = None,
        max_attempts: int = 3,
        timeout: int = 30,
        search_floor: Optional[int] = None,
        file_floor: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize API client.

        Args:
            pool: CredentialPool with at least one token
            session: requests.Session (optional)
            max_attempts: Attempts per call before giving up
            timeout: Per-request timeout in seconds
            search_floor: Quota floor for GraphQL search calls
            file_floor: Quota floor for REST file fetches
            sleep: Sleep function used for network backoff
        """
        self.pool = pool
        self.session = session or requests.Session()
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.search_floor = self.SEARCH_QUOTA_FLOOR if search_floor is None else search_floor
        self.file_floor = self.FILE_QUOTA_FLOOR if file_floor is None else file_floor
        self._sleep = sleep

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.pool.current_token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def request(
        self,
        method: str,
        url: str,
        floor: int,
        **kwargs,
    ) -> Optional[requests.Response]:
        """
        Perform a request with rotation and bounded retries.

        Switching to another token does not use up an attempt; only network
        retries and waits for a quota reset do. Rotations stay bounded
        because each one marks the previous token exhausted.

        Returns:
            The successful response, or None for 404

        Raises:
            TransientRateLimit: quota exhausted and attempts used up
            HttpError: any other non-success status
            requests.RequestException: network failure after all attempts
        """
        reset_at = None
        attempt = 0
        while attempt < self.max_attempts:
            self.pool.rotate_if_needed(floor)

            try:
                response = self.session.request(
                    method, url, headers=self._headers(), timeout=self.timeout, **kwargs
                )
            except requests.RequestException as e:
                wait_time = 2 ** attempt
                attempt += 1
                if attempt < self.max_attempts:
                    logger.warning("Request failed, retrying in %ds: %s", wait_time, e)
                    self._sleep(wait_time)
                    continue
                raise

            status = RateLimitStatus.from_response(response)
            self.pool.record(status)

            if self._is_rate_limited(response, status):
                reset_at = status.reset_at
                self.pool.mark_exhausted(reset_at)
                logger.warning(
                    "[RATE-LIMIT] Token index %d rate limited (%s)", self.pool.index, url
                )
                if self.pool.rotate():
                    continue
                attempt += 1
                if attempt < self.max_attempts:
                    self.pool.wait_for_reset()
                    continue
                break

            if response.status_code == 404:
                return None

            if not response.ok:
                raise HttpError(response.status_code, url)

            return response

        raise TransientRateLimit(reset_at or self.pool.earliest_reset())

    @staticmethod
    def _is_rate_limited(response: requests.Response, status: RateLimitStatus) -> bool:
        if response.status_code not in (403, 429):
            return False
        if status.remaining == 0:
            return True
        return "rate limit" in (response.text or "").lower()

    def _decode_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Expected JSON from {response.url}: {e}") from e

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run a GraphQL query and return its ``data`` object.

        A ``RATE_LIMITED`` error is handled like an HTTP rate limit: the
        token is marked exhausted and the query is retried.
        """
        payload = {"query": query, "variables": variables or {}}
        for _ in range(self.max_attempts):
            response = self.request("POST", self.GRAPHQL_URL, self.search_floor, json=payload)
            if response is None:
                raise HttpError(404, self.GRAPHQL_URL)

            body = self._decode_json(response)
            if not isinstance(body, dict):
                raise MalformedResponse("GraphQL response is not an object")

            errors = body.get("errors") or []
            if any(error.get("type") == "RATE_LIMITED" for error in errors if isinstance(error, dict)):
                self.pool.mark_exhausted()
                if not self.pool.rotate():
                    raise TransientRateLimit(self.pool.earliest_reset())
                continue

            data = body.get("data")
            if data is None:
                raise MalformedResponse(f"GraphQL query failed: {errors}")
            if errors:
                logger.warning("GraphQL returned partial data with errors: %s", errors)
            return data

        raise TransientRateLimit(self.pool.earliest_reset())

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a REST path. Returns None when the resource does not exist."""
        url = f"{self.BASE_URL}{path}"
        response = self.request("GET", url, self.file_floor, params=params)
        if response is None:
            return None
        return self._decode_json(response)

    def get_file_content(self, full_name: str, file_path: str) -> Optional[str]:
        """
        Fetch content of a single file.

        Returns:
            Decoded text, or None if the file does not exist
        """
        data = self.get_json(f"/repos/{full_name}/contents/{file_path}")
        return self._decode_content(data)

    def get_readme(self, full_name: str) -> Optional[str]:
        """Fetch the repository README through the readme endpoint."""
        data = self.get_json(f"/repos/{full_name}/readme")
        return self._decode_content(data)

    def list_directory(self, full_name: str, path: str = "") -> Optional[List[Dict[str, Any]]]:
        """
        List a directory.

        Returns:
            Content entries, or None if the directory does not exist
        """
        data = self.get_json(f"/repos/{full_name}/contents/{path}")
        if data is None:
            return None
        if not isinstance(data, list):
            return [data]  # Single file returns dict, not list
        return data

    @staticmethod
    def _decode_content(data: Any) -> Optional[str]:
        if not isinstance(data, dict) or not data.get("content"):
            return None
        if data.get("encoding", "base64") != "base64":
            raise MalformedResponse(f"Unexpected content encoding: {data.get('encoding')}")
        try:
            raw = base64.b64decode(data["content"])
        except (ValueError, TypeError) as e:
            raise MalformedResponse(f"Invalid base64 content: {e}") from e
        return raw.decode("utf-8", errors="replace")
