"""Tests for the repository classifier rules."""

import pytest

from repository_classifier import RepositoryClassifier


@pytest.fixture
def classifier():
    return RepositoryClassifier()


def test_homepage_alone_is_a_web_application(classifier, make_descriptor):
    descriptor = make_descriptor("acme/orders", homepage="https://orders.acme.com")

    assert classifier.is_web_application(descriptor)
    assert classifier.web_application_reason(descriptor) == "homepage"


def test_blank_homepage_is_not_a_signal(classifier, make_descriptor):
    descriptor = make_descriptor("acme/orders", homepage="   ")
    assert not classifier.is_web_application(descriptor)


@pytest.mark.parametrize("name", ["acme/react-table", "acme/vue-charts", "acme/acme-ui-kit", "acme/date-utils"])
def test_library_name_patterns(classifier, make_descriptor, name):
    descriptor = make_descriptor(
        name,
        description="A beautiful web application dashboard",
        homepage="https://example.com",
    )

    assert classifier.is_library(descriptor)
    assert classifier.library_reason(descriptor) == "library-name-pattern"


def test_library_keyword_without_app_keyword(classifier, make_descriptor):
    descriptor = make_descriptor("acme/charts", description="A tiny charting library for the browser")
    assert classifier.library_reason(descriptor) == "library-keyword"


def test_library_keyword_with_app_keyword_is_not_a_library(classifier, make_descriptor):
    descriptor = make_descriptor(
        "acme/crm", description="Open source CRM web application built with a modern framework"
    )
    assert not classifier.is_library(descriptor)


def test_readme_text_is_part_of_the_decision(classifier, make_descriptor):
    descriptor = make_descriptor("acme/widgets").with_readme("Install with npm install widgets")
    assert classifier.is_library(descriptor)


def test_curated_lists_documentation_and_dotfiles(classifier, make_descriptor):
    assert classifier.library_reason(make_descriptor("acme/awesome-a11y")) == "curated-list"
    assert classifier.library_reason(
        make_descriptor("acme/learn-css", description="Step by step tutorial")
    ) == "documentation"
    assert classifier.library_reason(make_descriptor("acme/dotfiles")) == "dotfiles"


def test_readme_mentioning_documentation_does_not_make_a_library(classifier, make_descriptor):
    descriptor = make_descriptor(
        "acme/storefront",
        description="Online storefront for Acme",
        homepage="https://storefront.acme.com",
    ).with_readme("See the documentation folder for setup. More examples in /docs.")

    verdict = classifier.classify(descriptor)

    assert verdict.accepted
    assert not verdict.is_library


def test_documentation_description_is_still_a_library(classifier, make_descriptor):
    descriptor = make_descriptor(
        "acme/handbook", description="Documentation for the Acme platform", homepage="https://docs.acme.com"
    )
    assert classifier.library_reason(descriptor) == "documentation"


def test_whole_word_matching(classifier, make_descriptor):
    descriptor = make_descriptor("acme/social", description="A facebook clone with a client portal")
    assert not classifier.is_library(descriptor)
    assert classifier.web_application_reason(descriptor) == "web-app-keyword"


def test_web_app_keyword_blocked_by_non_app_keyword(classifier, make_descriptor):
    descriptor = make_descriptor("acme/board", description="Dashboard plugin")
    assert not classifier.is_web_application(descriptor)


def test_web_app_topic(classifier, make_descriptor):
    descriptor = make_descriptor("acme/shop", topics=["pwa", "nodejs"])
    assert classifier.web_application_reason(descriptor) == "web-app-topic"


def test_ui_kit_is_excluded_before_web_app_rules(classifier, make_descriptor):
    descriptor = make_descriptor("acme/acme-ui-kit", description="A UI component library")

    verdict = classifier.classify(descriptor)

    assert not verdict.accepted
    assert verdict.is_library
    assert verdict.reason == "library-name-pattern"


def test_library_takes_priority_over_homepage(classifier, make_descriptor):
    descriptor = make_descriptor(
        "acme/charts", description="Charting library", homepage="https://charts.acme.dev"
    )

    assert classifier.is_library(descriptor)
    assert classifier.is_web_application(descriptor)
    verdict = classifier.classify(descriptor)
    assert not verdict.accepted
    assert verdict.is_library


def test_no_signal_is_rejected(classifier, make_descriptor):
    verdict = classifier.classify(make_descriptor("acme/scratch", description="Things"))
    assert not verdict.accepted
    assert verdict.reason == "no-web-app-signal"


def test_storefront_is_accepted(classifier, make_descriptor):
    verdict = classifier.classify(make_descriptor("acme/storefront", homepage="https://storefront.acme.com"))
    assert verdict.accepted
    assert verdict.reason == "homepage"
