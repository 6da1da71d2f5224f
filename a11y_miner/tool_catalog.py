"""
Accessibility tool catalog.

Static keyword sets used to detect tool usage in repository files, the
known configuration file names of each tool, and a separate
low-confidence inference table keyed by accessibility phrases.
"""

from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from models import AccessibilityTool


TOOL_KEYWORDS: Dict[AccessibilityTool, Tuple[str, ...]] = {
    AccessibilityTool.AXE: (
        "axe-core", "react-axe", "cypress-axe", "jest-axe",
        "axe-playwright", "axe-selenium-python", "@axe-core",
    ),
    AccessibilityTool.PA11Y: ("pa11y", "pa11y-ci"),
    AccessibilityTool.WAVE: ("wave-cli", "wave-accessibility", "webaim-wave"),
    AccessibilityTool.ACHECKER: ("achecker", "accessibility-checker", "ibma/equal-access"),
    AccessibilityTool.LIGHTHOUSE: ("lighthouse", "lighthouse-ci", "lhci", "lighthouse-ci-action"),
    AccessibilityTool.ASQATASUN: ("asqatasun",),
    AccessibilityTool.HTML_CODESNIFFER: ("html_codesniffer", "htmlcs", "squizlabs/html_codesniffer"),
}

# Matched against root file names, exact or substring
CONFIG_FILE_MARKERS: Dict[AccessibilityTool, Tuple[str, ...]] = {
    AccessibilityTool.AXE: (".axerc", "axe.config"),
    AccessibilityTool.PA11Y: (".pa11yci", "pa11y"),
    AccessibilityTool.WAVE: ("wave.config",),
    AccessibilityTool.ACHECKER: (".achecker.yml", ".achecker.yaml", "aceconfig"),
    AccessibilityTool.LIGHTHOUSE: ("lighthouserc", ".lighthouseci"),
    AccessibilityTool.ASQATASUN: ("asqatasun",),
    AccessibilityTool.HTML_CODESNIFFER: ("htmlcs",),
}

DEPENDENCY_MANIFESTS: Tuple[str, ...] = (
    "package.json",
    "composer.json",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "requirements.txt",
    "requirements-dev.txt",
    "Pipfile",
    "pyproject.toml",
    "setup.py",
    "Gemfile",
    "go.mod",
    "Cargo.toml",
)

# Resolved by listing the repository root
DEPENDENCY_MANIFEST_PATTERNS: Tuple[str, ...] = ("*.csproj", "*.gemspec")

WORKFLOWS_DIRECTORY = ".github/workflows"
WORKFLOW_EXTENSIONS: Tuple[str, ...] = (".yml", ".yaml")
# Fetched blindly when the workflows directory cannot be listed
FALLBACK_WORKFLOW_FILES: Tuple[str, ...] = (
    ".github/workflows/main.yml",
    ".github/workflows/ci.yml",
)

# Low-confidence tier: phrases that suggest, but do not prove, tool usage
INFERENCE_RULES: Tuple[Tuple[str, FrozenSet[AccessibilityTool]], ...] = (
    ("accessibility audit", frozenset({AccessibilityTool.LIGHTHOUSE, AccessibilityTool.AXE})),
    ("a11y audit", frozenset({AccessibilityTool.LIGHTHOUSE, AccessibilityTool.AXE})),
    ("automated accessibility testing", frozenset({AccessibilityTool.AXE, AccessibilityTool.PA11Y})),
    ("accessibility testing", frozenset({AccessibilityTool.AXE})),
    ("a11y testing", frozenset({AccessibilityTool.AXE})),
    ("wcag", frozenset({AccessibilityTool.AXE, AccessibilityTool.WAVE})),
)


def match_keywords(content: str) -> Set[AccessibilityTool]:
    """Tools whose keywords appear in ``content`` (case-insensitive)."""
    content_lower = (content or "").lower()
    return {
        tool
        for tool, keywords in TOOL_KEYWORDS.items()
        if any(keyword in content_lower for keyword in keywords)
    }


def match_config_filename(filename: str) -> Set[AccessibilityTool]:
    """Tools whose configuration file naming matches ``filename``."""
    name = filename.lower()
    return {
        tool
        for tool, markers in CONFIG_FILE_MARKERS.items()
        if any(name == marker or marker in name for marker in markers)
    }


def infer_tools(text: str) -> List[Tuple[str, FrozenSet[AccessibilityTool]]]:
    """Inference rules whose phrase appears in ``text``."""
    text_lower = (text or "").lower()
    return [(phrase, tools) for phrase, tools in INFERENCE_RULES if phrase in text_lower]


def is_workflow_file(name: str) -> bool:
    return name.lower().endswith(WORKFLOW_EXTENSIONS)


def tool_names(tools: Iterable[AccessibilityTool]) -> List[str]:
    """Catalog-ordered tool names."""
    selected = set(tools)
    return [tool.value for tool in AccessibilityTool if tool in selected]
