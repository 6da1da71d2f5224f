"""
Accessibility scan report.

Turns per-tool run results into report rows with the coverage error rate
(CER) and the accessibility success rate, and writes them to CSV.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from models import ScanReportRow, ToolRunResult
from a11y_miner.wcag import WCAG_AUTOMATABLE_CRITERIA, success_rate

logger = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = "resultados_acessibilidade.csv"

REPORT_COLUMNS = [
    "Repositorio",
    "Ferramenta",
    "Status",
    "ViolacoesTotal",
    "WarningsTotal",
    "ViolacoesA",
    "ViolacoesAA",
    "ViolacoesAAA",
    "ViolacoesIndefinido",
    "CER",
    "TaxaSucessoAcessibilidade",
]


class ScanError(Exception):
    """A scanner could not produce a usable result."""


def row_from_result(repository: str, result: ToolRunResult) -> ScanReportRow:
    """OK row for one tool; CER is filled in by ``apply_cer``."""
    return ScanReportRow(
        repository=repository,
        tool=result.tool,
        status="OK",
        violations_total=result.violations,
        warnings_total=result.warnings,
        violations_a=result.levels.level_a,
        violations_aa=result.levels.level_aa,
        violations_aaa=result.levels.level_aaa,
        violations_unclassified=result.levels.unclassified,
        cer="0",
        success_rate=success_rate(result.violations, WCAG_AUTOMATABLE_CRITERIA),
    )


def apply_cer(rows: List[ScanReportRow], rule_ids_by_tool: Dict[str, Set[str]]) -> None:
    """
    Fill in CER for every OK row.

    CER = distinct rule ids found by the tool / distinct rule ids found by
    all tools. Rows keep CER 0 when no tool found anything.
    """
    all_rule_ids: Set[str] = set()
    for rule_ids in rule_ids_by_tool.values():
        all_rule_ids |= rule_ids

    if not all_rule_ids:
        return

    for row in rows:
        if row.status != "OK":
            continue
        tool_rule_ids = rule_ids_by_tool.get(row.tool, set())
        row.cer = f"{len(tool_rule_ids) / len(all_rule_ids):.2f}"


def build_report(
    repository: str,
    results: Dict[str, Optional[ToolRunResult]],
) -> List[ScanReportRow]:
    """
    Build report rows in tool order.

    Args:
        repository: Repository name for the first column
        results: tool -> run result, or None when the run failed
    """
    rows: List[ScanReportRow] = []
    rule_ids_by_tool: Dict[str, Set[str]] = {}
    for tool, result in results.items():
        if result is None:
            rows.append(ScanReportRow.failed(repository, tool))
            continue
        rows.append(row_from_result(repository, result))
        rule_ids_by_tool[tool] = set(result.rule_ids)

    apply_cer(rows, rule_ids_by_tool)
    return rows


def failed_report(repository: str, tools: Iterable[str]) -> List[ScanReportRow]:
    return [ScanReportRow.failed(repository, tool) for tool in tools]


def write_report(rows: List[ScanReportRow], path: Union[str, Path] = DEFAULT_REPORT_PATH) -> Path:
    """Write report rows with a header, replacing any previous report."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: ("" if v is None else v) for k, v in row.to_dict().items()})
    logger.info("Results saved to %s", path)
    return path
