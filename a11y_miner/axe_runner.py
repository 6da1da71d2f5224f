"""Run axe-core against a URL in headless Chromium and summarize the result."""

import logging
from pathlib import Path
from typing import Any, Dict, List

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from models import ToolRunResult, WcagLevel
from a11y_miner.scan_report import ScanError
from a11y_miner.wcag import classify_by_level, level_for_text

logger = logging.getLogger(__name__)

ASSETS_DIR = Path("assets")
AXE_PATH = ASSETS_DIR / "axe.min.js"
AXE_CDN = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.9.1/axe.min.js"

CONFIRMED_IMPACTS = ("serious", "critical")
WARNING_IMPACTS = ("moderate", "minor")


def ensure_axe_js(axe_path: Path = AXE_PATH, url: str = AXE_CDN) -> Path:
    """Ensure axe.min.js exists locally, download from CDN if missing."""
    if axe_path.exists() and axe_path.stat().st_size > 0:
        return axe_path
    try:
        r = requests.get(url, timeout=20)
        r.raise_for_status()
    except requests.RequestException as e:
        raise ScanError(f"Could not download axe-core from {url}: {e}") from e
    axe_path.parent.mkdir(parents=True, exist_ok=True)
    axe_path.write_bytes(r.content)
    return axe_path


def run_axe_on_url(url: str, timeout_ms: int = 60000) -> Dict[str, Any]:
    """Load ``url``, inject axe-core and return the raw ``axe.run()`` result."""
    axe_path = ensure_axe_js()
    logger.info("Starting AXE on %s", url)
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox", "--disable-setuid-sandbox"], headless=True)
            try:
                page = browser.new_page()
                page.set_default_timeout(timeout_ms)
                page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                page.add_script_tag(path=str(axe_path))
                result = page.evaluate(
                    """
                    async () => {
                        if (!window.axe || !axe.run) {
                            return {error: 'axe not loaded'};
                        }
                        return await axe.run();
                    }
                    """
                )
            finally:
                browser.close()
    except PlaywrightError as e:
        raise ScanError(f"AXE/Playwright failed for {url}: {e}") from e

    if not isinstance(result, dict):
        raise ScanError("unexpected axe result")
    if result.get("error"):
        raise ScanError(result["error"])
    return result


def summarize_axe(result: Dict[str, Any]) -> ToolRunResult:
    """
    Reduce an axe result to counts.

    Violations with serious/critical impact are confirmed and bucketed by
    WCAG level; moderate/minor ones count as warnings.
    """
    violations: List[Dict[str, Any]] = result.get("violations") or []
    confirmed = [v for v in violations if v.get("impact") in CONFIRMED_IMPACTS]
    warnings = [v for v in violations if v.get("impact") in WARNING_IMPACTS]

    def tag_text(violation: Dict[str, Any]) -> str:
        return " ".join(violation.get("tags") or [])

    for violation in confirmed:
        if level_for_text(tag_text(violation)) == WcagLevel.UNCLASSIFIED:
            logger.info(
                "Unclassified (AXE): %s | impact: %s | %s",
                violation.get("id"), violation.get("impact"), violation.get("description"),
            )

    return ToolRunResult(
        tool="AXE",
        violations=len(confirmed),
        warnings=len(warnings),
        rule_ids=[v.get("id") for v in confirmed if v.get("id")],
        levels=classify_by_level(confirmed, tag_text),
    )


def run_axe(url: str) -> ToolRunResult:
    return summarize_axe(run_axe_on_url(url))
