"""
RepositoryClassifier - Decides whether a repository is a deployable web
application or a library/tooling artifact.

Both decisions are ordered lists of named rules. The first rule that
fires supplies the reason label, so every verdict can be traced back to
a single rule.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Tuple

from models import RepositoryDescriptor


LIBRARY_NAME_PATTERNS = [
    re.compile(
        r"^(react|vue|angular|ng|svelte|next|nuxt|gatsby|eslint|babel|webpack|vite|"
        r"rollup|postcss|tailwind|jquery|express|django|flask|laravel)-"
    ),
    re.compile(
        r"-(ui|kit|utils|util|lib|sdk|cli|plugin|components|hooks|loader|types|"
        r"boilerplate|starter|template)$"
    ),
    re.compile(r"\.(js|py)$"),
]

STRONG_LIBRARY_KEYWORDS = [
    "library", "framework", "boilerplate", "sdk", "cli tool",
    "command line tool", "command-line tool", "npm install", "pip install",
    "component library", "ui kit", "plugin for", "starter kit", "template for",
]

APP_KEYWORDS = [
    "web app", "webapp", "web application", "application", "dashboard",
    "platform", "website", "saas",
]

CURATED_LIST_KEYWORDS = ["awesome list", "curated list", "list of resources"]

DOCUMENTATION_KEYWORDS = [
    "documentation", "tutorial", "course", "book", "cheatsheet", "cheat sheet", "examples",
]

DOTFILES_KEYWORDS = ["dotfiles", "my config", "configuration files"]

WEB_APP_KEYWORDS = [
    "web app", "webapp", "web application", "website", "dashboard", "saas",
    "e-commerce", "ecommerce", "online store", "platform", "portal",
    "admin panel", "social network", "blog",
]

NON_APP_KEYWORDS = [
    "library", "framework", "sdk", "cli", "plugin", "package", "module",
    "boilerplate", "template",
]

WEB_APP_TOPICS = frozenset({
    "web-app", "webapp", "web-application", "website", "saas", "dashboard",
    "ecommerce", "e-commerce", "pwa", "progressive-web-app", "fullstack",
    "full-stack", "single-page-app", "spa", "cms", "blog", "portal",
})


@lru_cache(maxsize=None)
def _keyword_pattern(keywords: Tuple[str, ...]) -> "re.Pattern":
    # Whole-word match so "cli" does not hit "client" or "book" hit "facebook"
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])")


def _contains_any(text: str, keywords: List[str]) -> bool:
    return _keyword_pattern(tuple(keywords)).search(text) is not None


@dataclass(frozen=True)
class ClassificationRule:
    """A named predicate over a descriptor and its combined lower-cased text."""
    name: str
    predicate: Callable[[RepositoryDescriptor, str], bool]

    def applies(self, descriptor: RepositoryDescriptor, text: str) -> bool:
        return self.predicate(descriptor, text)


@dataclass(frozen=True)
class ClassificationVerdict:
    """Outcome of the classifier gate."""
    accepted: bool
    is_library: bool
    is_web_application: bool
    reason: str


LIBRARY_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "library-name-pattern",
        lambda d, text: any(p.search(d.name.lower()) for p in LIBRARY_NAME_PATTERNS),
    ),
    ClassificationRule(
        "library-keyword",
        lambda d, text: _contains_any(text, STRONG_LIBRARY_KEYWORDS)
        and not _contains_any(text, APP_KEYWORDS),
    ),
    # The remaining rules ignore the README, which nearly always mentions docs or examples
    ClassificationRule(
        "curated-list",
        lambda d, text: d.name.lower().startswith("awesome")
        or _contains_any(d.metadata_text(), CURATED_LIST_KEYWORDS),
    ),
    ClassificationRule(
        "documentation",
        lambda d, text: _contains_any(d.metadata_text(), DOCUMENTATION_KEYWORDS),
    ),
    ClassificationRule(
        "dotfiles",
        lambda d, text: _contains_any(d.metadata_text(), DOTFILES_KEYWORDS),
    ),
)

WEB_APP_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "web-app-keyword",
        lambda d, text: _contains_any(text, WEB_APP_KEYWORDS)
        and not _contains_any(text, NON_APP_KEYWORDS),
    ),
    ClassificationRule(
        "web-app-topic",
        lambda d, text: bool(WEB_APP_TOPICS & {topic.lower() for topic in d.topics}),
    ),
    ClassificationRule(
        "homepage",
        lambda d, text: bool((d.homepage or "").strip()),
    ),
)


class RepositoryClassifier:
    """
    Classifies repositories as library/tooling or web application.

    ``classify`` checks the library rules first and short-circuits, so a
    repository that satisfies both predicates (for example a homepage plus
    strong library keywords) is treated as a library.
    """

    def __init__(
        self,
        library_rules: Tuple[ClassificationRule, ...] = LIBRARY_RULES,
        web_app_rules: Tuple[ClassificationRule, ...] = WEB_APP_RULES,
    ):
        self.library_rules = library_rules
        self.web_app_rules = web_app_rules

    @staticmethod
    def _first_match(
        rules: Tuple[ClassificationRule, ...], descriptor: RepositoryDescriptor
    ) -> Optional[str]:
        text = descriptor.combined_text()
        for rule in rules:
            if rule.applies(descriptor, text):
                return rule.name
        return None

    def library_reason(self, descriptor: RepositoryDescriptor) -> Optional[str]:
        """Name of the first library rule that fires, or None."""
        return self._first_match(self.library_rules, descriptor)

    def web_application_reason(self, descriptor: RepositoryDescriptor) -> Optional[str]:
        """Name of the first web application rule that fires, or None."""
        return self._first_match(self.web_app_rules, descriptor)

    def is_library(self, descriptor: RepositoryDescriptor) -> bool:
        return self.library_reason(descriptor) is not None

    def is_web_application(self, descriptor: RepositoryDescriptor) -> bool:
        return self.web_application_reason(descriptor) is not None

    def classify(self, descriptor: RepositoryDescriptor) -> ClassificationVerdict:
        """
        Run the classifier gate.

        Args:
            descriptor: Repository metadata (README attached when available)

        Returns:
            ClassificationVerdict; ``accepted`` is True only for web
            applications that are not libraries
        """
        library_reason = self.library_reason(descriptor)
        if library_reason:
            return ClassificationVerdict(
                accepted=False,
                is_library=True,
                is_web_application=False,
                reason=library_reason,
            )

        web_app_reason = self.web_application_reason(descriptor)
        if web_app_reason:
            return ClassificationVerdict(
                accepted=True,
                is_library=False,
                is_web_application=True,
                reason=web_app_reason,
            )

        return ClassificationVerdict(
            accepted=False,
            is_library=False,
            is_web_application=False,
            reason="no-web-app-signal",
        )
