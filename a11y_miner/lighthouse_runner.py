"""Run the Lighthouse CLI through npx and summarize its JSON report."""

import json
import logging
import shutil
import subprocess
from typing import Any, Dict, List, Optional

from models import ToolRunResult, WcagLevel
from a11y_miner.scan_report import ScanError
from a11y_miner.wcag import classify_by_level, level_for_text

logger = logging.getLogger(__name__)

DEFAULT_CHROME_FLAGS = ["--headless=new", "--no-sandbox", "--disable-dev-shm-usage"]


def build_lighthouse_cmd(url: str, chrome_flags: Optional[List[str]] = None, timeout_ms: int = 60000) -> List[str]:
    npx = shutil.which("npx")
    if not npx:
        raise ScanError("npx not found on PATH. Install Node.js or add npx to PATH.")
    flags = chrome_flags or DEFAULT_CHROME_FLAGS
    return [
        npx, "lighthouse", url,
        "--quiet",
        "--output=json",
        "--output-path=stdout",
        f"--max-wait-for-load={timeout_ms}",
        "--chrome-flags=" + " ".join(flags),
    ]


def run_lighthouse_report(url: str, chrome_flags: Optional[List[str]] = None) -> Dict[str, Any]:
    """Run Lighthouse and return the parsed JSON report."""
    cmd = build_lighthouse_cmd(url, chrome_flags)
    logger.info("Starting Lighthouse on %s", url)
    p = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    if p.returncode != 0 and not p.stdout.strip():
        raise ScanError(f"Lighthouse failed for {url}: {p.stderr.strip()}")
    try:
        return json.loads(p.stdout)
    except json.JSONDecodeError as e:
        raise ScanError(f"Lighthouse JSON parse failed for {url}: {e}") from e


def summarize_lighthouse(report: Dict[str, Any]) -> ToolRunResult:
    """
    Reduce a Lighthouse report to counts.

    Failed audits have score 0 and a display mode other than informative;
    informative audits count as warnings. Failed audits are bucketed by
    their description text.
    """
    audits = list((report.get("audits") or {}).values())
    failed = [
        a for a in audits
        if a.get("score") == 0 and a.get("scoreDisplayMode") != "informative"
    ]
    warnings = [a for a in audits if a.get("scoreDisplayMode") == "informative"]

    def description(audit: Dict[str, Any]) -> str:
        return audit.get("description") or ""

    for audit in failed:
        if level_for_text(description(audit)) == WcagLevel.UNCLASSIFIED:
            logger.info("Unclassified (Lighthouse): %s | %s", audit.get("id"), audit.get("title"))

    return ToolRunResult(
        tool="Lighthouse",
        violations=len(failed),
        warnings=len(warnings),
        rule_ids=[a.get("id") for a in failed if a.get("id")],
        levels=classify_by_level(failed, description),
    )


def run_lighthouse(url: str) -> ToolRunResult:
    return summarize_lighthouse(run_lighthouse_report(url))
