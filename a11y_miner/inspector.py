"""
Repository inspector module.

Detects accessibility tool usage from configuration files, dependency
manifests and CI workflows without cloning the repository.
"""

import fnmatch
import logging
import time
from typing import Callable, List, Optional

from models import DetectionResult, RepositoryDescriptor
from a11y_miner.api_client import GitHubAPIClient
from a11y_miner import tool_catalog

logger = logging.getLogger(__name__)


class ToolUsageDetector:
    """
    Inspect a GitHub repository for accessibility testing tools.

    Checks, in order:
    - Known configuration file names at the repository root
    - Dependency manifests (including wildcard names like *.csproj)
    - CI workflow definitions under .github/workflows
    - Repository description, topics and homepage

    Missing files contribute nothing. Only API client errors propagate.
    """

    def __init__(
        self,
        client: GitHubAPIClient,
        request_delay: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize detector.

        Args:
            client: Rate-limited API client
            request_delay: Politeness delay between file fetches
            sleep: Sleep function (injectable for tests)
        """
        self.client = client
        self.request_delay = request_delay
        self._sleep = sleep

    def detect(
        self,
        owner: str,
        repo: str,
        descriptor: Optional[RepositoryDescriptor] = None,
    ) -> DetectionResult:
        """
        Build the tool membership map for one repository.

        Args:
            owner: Repository owner
            repo: Repository name
            descriptor: Search metadata, scanned for keywords and phrases

        Returns:
            DetectionResult with every catalog tool present
        """
        full_name = f"{owner}/{repo}"
        result = DetectionResult()

        root_entries = self.client.list_directory(full_name, "")
        root_files = [
            entry.get("name", "")
            for entry in root_entries or []
            if entry.get("type", "file") == "file"
        ]

        self._scan_config_filenames(root_files, result)

        for manifest in self._manifests_to_fetch(root_entries, root_files):
            self._scan_file(full_name, manifest, result)

        for workflow in self._workflow_files(full_name):
            self._scan_file(full_name, workflow, result)

        if descriptor is not None:
            self._scan_metadata(descriptor, result)

        found = tool_catalog.tool_names(result.found_tools())
        if found:
            logger.debug("Detection hits for %s: %s", full_name, ", ".join(found))
        return result

    def _scan_config_filenames(self, root_files: List[str], result: DetectionResult) -> None:
        for filename in root_files:
            for tool in tool_catalog.match_config_filename(filename):
                result.mark(tool, f"config:{filename}")

    def _manifests_to_fetch(self, root_entries, root_files: List[str]) -> List[str]:
        """
        Manifest paths worth fetching.

        When the root listing is available only present files are fetched;
        otherwise the fixed names are tried blindly.
        """
        if root_entries is None:
            return list(tool_catalog.DEPENDENCY_MANIFESTS)

        present = set(root_files)
        manifests = [name for name in tool_catalog.DEPENDENCY_MANIFESTS if name in present]
        for pattern in tool_catalog.DEPENDENCY_MANIFEST_PATTERNS:
            manifests.extend(
                name for name in root_files
                if fnmatch.fnmatch(name, pattern) and name not in manifests
            )
        return manifests

    def _workflow_files(self, full_name: str) -> List[str]:
        entries = self.client.list_directory(full_name, tool_catalog.WORKFLOWS_DIRECTORY)
        if entries is None:
            return list(tool_catalog.FALLBACK_WORKFLOW_FILES)
        return [
            entry.get("path") or f"{tool_catalog.WORKFLOWS_DIRECTORY}/{entry.get('name')}"
            for entry in entries
            if entry.get("type", "file") == "file"
            and tool_catalog.is_workflow_file(entry.get("name", ""))
        ]

    def _scan_file(self, full_name: str, path: str, result: DetectionResult) -> None:
        content = self.client.get_file_content(full_name, path)
        if content:
            for tool in tool_catalog.match_keywords(content):
                result.mark(tool, path)
        if self.request_delay:
            self._sleep(self.request_delay)

    def _scan_metadata(self, descriptor: RepositoryDescriptor, result: DetectionResult) -> None:
        """Direct keywords in metadata, then the inference tier."""
        topics = " ".join(sorted(descriptor.topics))
        metadata_text = " ".join([descriptor.description or "", topics, descriptor.homepage or ""])
        for tool in tool_catalog.match_keywords(metadata_text):
            result.mark(tool, "metadata")

        phrase_text = " ".join([descriptor.description or "", topics.replace("-", " ")])
        for phrase, tools in tool_catalog.infer_tools(phrase_text):
            for tool in tools:
                result.infer(tool, f"inferred:{phrase}")
