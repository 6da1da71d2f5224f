"""
Accessibility scan script.

Runs axe-core and Lighthouse against a deployed URL or a locally started
application and writes WCAG-level counts, CER and success rate per tool.

Usage:
    python run_accessibility_tests.py owner/repo [URL] --tools AXE,Lighthouse
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from models import ScanReportRow, ToolRunResult
from a11y_miner.axe_runner import run_axe
from a11y_miner.lighthouse_runner import run_lighthouse
from a11y_miner.local_server import DEFAULT_REPO_PATH, check_url, resolve_local_url
from a11y_miner.log_config import setup_logging
from a11y_miner.scan_report import DEFAULT_REPORT_PATH, build_report, failed_report, write_report

logger = logging.getLogger(__name__)

Runner = Callable[[str], ToolRunResult]

RUNNERS: Dict[str, Runner] = {
    "AXE": run_axe,
    "Lighthouse": run_lighthouse,
}


def run_scan(
    repository: str,
    url: Optional[str],
    tools: List[str],
    repo_path: str = DEFAULT_REPO_PATH,
    runners: Optional[Dict[str, Runner]] = None,
) -> List[ScanReportRow]:
    """
    Scan one application with every requested tool.

    Args:
        repository: Repository name for the report
        url: Application URL; detected locally when None
        tools: Tool names in report order
        repo_path: Checkout used to read .env / package.json ports
        runners: tool -> runner (defaults to AXE and Lighthouse)

    Returns:
        Report rows; every tool FAILs when no URL can be resolved
    """
    runners = RUNNERS if runners is None else runners

    if not url:
        logger.info("Detecting local port...")
        url = resolve_local_url(repo_path)
        if not url:
            logger.error("No server detected. Marking every tool as FAIL.")
            return failed_report(repository, tools)
        logger.info("Server detected at %s", url)

    check_url(url)

    results: Dict[str, Optional[ToolRunResult]] = {}
    for tool in tools:
        runner = runners.get(tool)
        if runner is None:
            logger.warning("Tool %s is not supported by this runner; skipping", tool)
            continue
        try:
            results[tool] = runner(url)
        except Exception as e:
            logger.error("[ERROR] Tool %s failed: %s", tool, e)
            results[tool] = None

    return build_report(repository, results)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run accessibility scanners against an application")
    parser.add_argument("repository", help="Repository name written to the report")
    parser.add_argument("url", nargs="?", help="Application URL (detected locally when omitted)")
    parser.add_argument("--tools", default="AXE,Lighthouse", help="Comma-separated tool names")
    parser.add_argument("--output", default=DEFAULT_REPORT_PATH)
    parser.add_argument("--repo-path", default=DEFAULT_REPO_PATH)
    parser.add_argument("--log-file")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    tools = [tool.strip() for tool in args.tools.split(",") if tool.strip()]
    rows = run_scan(args.repository, args.url, tools, repo_path=args.repo_path)
    write_report(rows, args.output)

    for row in rows:
        print(f"  [{row.status}] {row.tool}: violations={row.violations_total} cer={row.cer}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
