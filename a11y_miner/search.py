"""
GitHub repository search module.

Searches GitHub repositories via the GraphQL API, one cursor page at a time.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import RepositoryDescriptor
from a11y_miner.api_client import GitHubAPIClient

logger = logging.getLogger(__name__)


SEARCH_QUERY = """
query Search($query: String!, $first: Int!, $after: String) {
  search(query: $query, type: REPOSITORY, first: $first, after: $after) {
    repositoryCount
    pageInfo { hasNextPage endCursor }
    nodes {
      ... on Repository {
        nameWithOwner
        stargazerCount
        pushedAt
        description
        homepageUrl
        primaryLanguage { name }
        repositoryTopics(first: 20) { nodes { topic { name } } }
      }
    }
  }
}
"""


@dataclass
class SearchPage:
    """One page of search results."""
    repositories: List[RepositoryDescriptor] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None
    repository_count: int = 0


class GitHubSearch:
    """
    Search GitHub repositories via GraphQL.

    Pagination is cursor based; the crawl loop owns the cursor so a page
    can be retried after a rate limit backoff.
    """

    def __init__(self, client: GitHubAPIClient, per_page: int = 100):
        """
        Initialize GitHub search.

        Args:
            client: Rate-limited API client
            per_page: Results per page (GraphQL max is 100)
        """
        self.client = client
        self.per_page = min(per_page, 100)

    def fetch_page(self, query: str, cursor: Optional[str] = None) -> SearchPage:
        """
        Fetch a single page of search results.

        Args:
            query: GitHub search query string
            cursor: End cursor of the previous page (None for the first)

        Returns:
            SearchPage with parsed repositories and pagination info
        """
        data = self.client.graphql(
            SEARCH_QUERY,
            {"query": query, "first": self.per_page, "after": cursor},
        )
        search = data.get("search") or {}
        page_info = search.get("pageInfo") or {}

        repositories = []
        for node in search.get("nodes") or []:
            if not node or not node.get("nameWithOwner"):
                continue
            try:
                repositories.append(self._parse_node(node))
            except (TypeError, ValueError) as e:
                logger.warning("Error parsing search result: %s", e)

        return SearchPage(
            repositories=repositories,
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
            repository_count=search.get("repositoryCount") or 0,
        )

    @staticmethod
    def _parse_node(node: Dict[str, Any]) -> RepositoryDescriptor:
        """
        Parse a GraphQL repository node.

        Args:
            node: Raw node from the search connection

        Returns:
            RepositoryDescriptor
        """
        language = node.get("primaryLanguage") or {}
        topic_nodes = (node.get("repositoryTopics") or {}).get("nodes") or []
        topics = frozenset(
            topic_node["topic"]["name"].lower()
            for topic_node in topic_nodes
            if topic_node and topic_node.get("topic")
        )
        return RepositoryDescriptor(
            full_name=node["nameWithOwner"],
            stars=int(node.get("stargazerCount") or 0),
            pushed_at=node.get("pushedAt"),
            language=language.get("name"),
            topics=topics,
            homepage=(node.get("homepageUrl") or "").strip() or None,
            description=node.get("description"),
        )
