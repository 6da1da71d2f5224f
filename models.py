"""
Data models for the accessibility tool usage miner.

Repository descriptors are immutable once fetched; detection results and
records are created fresh for every repository.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Set, Any
from enum import Enum


class AccessibilityTool(str, Enum):
    """Closed catalog of accessibility testing tools, in CSV column order."""
    AXE = "AXE"
    PA11Y = "Pa11y"
    WAVE = "WAVE"
    ACHECKER = "AChecker"
    LIGHTHOUSE = "Lighthouse"
    ASQATASUN = "Asqatasun"
    HTML_CODESNIFFER = "HTML_CodeSniffer"


class WcagLevel(str, Enum):
    """WCAG conformance bucket assigned to a violation."""
    A = "A"
    AA = "AA"
    AAA = "AAA"
    UNCLASSIFIED = "unclassified"


TOOL_CSV_HEADER = ["Repositorio", "Numero de Estrelas", "Ultimo Commit"] + [
    tool.value for tool in AccessibilityTool
]
NO_TOOL_CSV_HEADER = ["Repositorio", "Numero de Estrelas", "Ultimo Commit", "Linguagem Principal"]


@dataclass(frozen=True)
class RepositoryDescriptor:
    """Repository metadata as returned by the search API."""
    full_name: str  # e.g., "acme/storefront"
    stars: int = 0
    pushed_at: Optional[str] = None  # ISO-8601 timestamp of the last push
    language: Optional[str] = None
    topics: FrozenSet[str] = frozenset()
    homepage: Optional[str] = None
    description: Optional[str] = None
    readme: Optional[str] = None

    @property
    def owner(self) -> str:
        """Extract owner from full_name."""
        return self.full_name.split("/")[0]

    @property
    def name(self) -> str:
        """Extract repo name from full_name."""
        return self.full_name.split("/")[-1]

    def with_readme(self, readme: Optional[str]) -> "RepositoryDescriptor":
        """Create a new descriptor with the README text attached."""
        return replace(self, readme=readme)

    def combined_text(self) -> str:
        """Lower-cased name, description, topics, homepage and README."""
        parts = [
            self.name,
            self.description or "",
            " ".join(sorted(self.topics)),
            self.homepage or "",
            self.readme or "",
        ]
        return " ".join(parts).lower()

    def metadata_text(self) -> str:
        """Lower-cased name, description and topics (no README, no homepage)."""
        return " ".join([self.name, self.description or "", " ".join(sorted(self.topics))]).lower()


@dataclass
class DetectionResult:
    """
    Per-repository tool usage.

    ``direct`` holds keyword hits found in files and metadata. ``inferred``
    holds the low-confidence tier derived from accessibility phrases.
    """
    direct: Dict[AccessibilityTool, bool] = field(
        default_factory=lambda: {tool: False for tool in AccessibilityTool}
    )
    inferred: Set[AccessibilityTool] = field(default_factory=set)
    evidence: Dict[AccessibilityTool, List[str]] = field(default_factory=dict)

    def mark(self, tool: AccessibilityTool, source: str) -> None:
        """Mark a tool as found. Detection never unsets a tool."""
        self.direct[tool] = True
        sources = self.evidence.setdefault(tool, [])
        if source not in sources:
            sources.append(source)

    def infer(self, tool: AccessibilityTool, source: str) -> None:
        self.inferred.add(tool)
        sources = self.evidence.setdefault(tool, [])
        if source not in sources:
            sources.append(source)

    @property
    def tools(self) -> Dict[AccessibilityTool, bool]:
        """Combined membership map (direct OR inferred)."""
        return {
            tool: self.direct.get(tool, False) or tool in self.inferred
            for tool in AccessibilityTool
        }

    @property
    def any_found(self) -> bool:
        return any(self.tools.values())

    def found_tools(self) -> List[AccessibilityTool]:
        return [tool for tool, found in self.tools.items() if found]


@dataclass
class MinedRepository:
    """A repository accepted by the crawl loop, ready for the CSV sink."""
    descriptor: RepositoryDescriptor
    detection: DetectionResult

    def to_tool_row(self) -> List[Any]:
        """Row for the tool usage CSV (one boolean column per tool)."""
        tools = self.detection.tools
        return [
            self.descriptor.full_name,
            self.descriptor.stars,
            self.descriptor.pushed_at or "",
        ] + ["true" if tools[tool] else "false" for tool in AccessibilityTool]

    def to_no_tool_row(self) -> List[Any]:
        """Row for the CSV of repositories without any catalog tool."""
        return [
            self.descriptor.full_name,
            self.descriptor.stars,
            self.descriptor.pushed_at or "",
            self.descriptor.language or "N/A",
        ]


@dataclass
class WcagLevelCounts:
    """Violation counts bucketed by WCAG conformance level."""
    level_a: int = 0
    level_aa: int = 0
    level_aaa: int = 0
    unclassified: int = 0

    def add(self, level: WcagLevel) -> None:
        if level == WcagLevel.A:
            self.level_a += 1
        elif level == WcagLevel.AA:
            self.level_aa += 1
        elif level == WcagLevel.AAA:
            self.level_aaa += 1
        else:
            self.unclassified += 1

    @property
    def total(self) -> int:
        return self.level_a + self.level_aa + self.level_aaa + self.unclassified


@dataclass
class ToolRunResult:
    """Summary of one accessibility scanner run against one URL."""
    tool: str
    violations: int
    warnings: int
    rule_ids: List[str]
    levels: WcagLevelCounts


@dataclass
class ScanReportRow:
    """One row of the accessibility scan report."""
    repository: str
    tool: str
    status: str  # "OK" or "FAIL"
    violations_total: Optional[int] = None
    warnings_total: Optional[int] = None
    violations_a: Optional[int] = None
    violations_aa: Optional[int] = None
    violations_aaa: Optional[int] = None
    violations_unclassified: Optional[int] = None
    cer: Optional[str] = None
    success_rate: Optional[str] = None

    @classmethod
    def failed(cls, repository: str, tool: str) -> "ScanReportRow":
        return cls(repository=repository, tool=tool, status="FAIL")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary keyed by report column title."""
        return {
            "Repositorio": self.repository,
            "Ferramenta": self.tool,
            "Status": self.status,
            "ViolacoesTotal": self.violations_total,
            "WarningsTotal": self.warnings_total,
            "ViolacoesA": self.violations_a,
            "ViolacoesAA": self.violations_aa,
            "ViolacoesAAA": self.violations_aaa,
            "ViolacoesIndefinido": self.violations_unclassified,
            "CER": self.cer,
            "TaxaSucessoAcessibilidade": self.success_rate,
        }
