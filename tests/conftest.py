"""Shared test fixtures and configuration."""

from __future__ import annotations

import os

import orjson
import pytest

from fragment_search.config import get_settings
from fragment_search.domain.fragment import Fragment, FragmentCategory


TEST_ENV = {
    "FRAGMENT_SEARCH_TITLE_BOOST": "2.0",
    "FRAGMENT_SEARCH_MIN_TOKEN_LENGTH": "2",
    "FRAGMENT_SEARCH_BUILD_WORKERS": "1",
    "FRAGMENT_SEARCH_DEFAULT_LIMIT": "10",
    "FRAGMENT_SEARCH_SNIPPET_MAX_CHARS": "200",
    "FRAGMENT_SEARCH_SNIPPET_STYLE": "plain",
    "FRAGMENT_SEARCH_LOG_LEVEL": "info",
    "FRAGMENT_SEARCH_LOG_JSON": "false",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


DOCUMENTER_RECORDS = [
    {
        "location": "instability/#Type-instability-and-performance",
        "page": "Type instability",
        "title": "Type instability and performance",
        "text": "",
        "category": "section",
    },
    {
        "location": "instability/",
        "page": "Type instability",
        "title": "Type instability",
        "text": (
            "Type instabilities generally occur when we try to use global variables inside functions, "
            "that is, without passing these variables as parameters to the functions."
        ),
        "category": "page",
    },
    {
        "location": "immutable/#Immutable-variables",
        "page": "Immutable variables",
        "title": "Immutable variables",
        "text": "",
        "category": "section",
    },
    {
        "location": "immutable/",
        "page": "Immutable variables",
        "title": "Immutable variables",
        "text": "A mutable struct is allocated on the heap, while an immutable one can live on the stack.",
        "category": "page",
    },
    {
        "location": "allocations/",
        "page": "Tracking allocations",
        "title": "Tracking allocations",
        "text": "julia> @time f()\n  0.000002 seconds (1 allocation: 16 bytes)\n",
        "category": "page",
    },
    {
        "location": "",
        "page": "Home",
        "title": "Home",
        "text": "A collection of explanations and tips to make the best use of Julia.",
        "category": "page",
    },
]

DOCUMENTER_JS = 'var documenterSearchIndex = {"docs":\n' + orjson.dumps(DOCUMENTER_RECORDS).decode("utf-8") + "\n}\n"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Pin settings env vars for every test and drop the cached settings instance."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def example_fragments() -> list[Fragment]:
    """The two-fragment corpus used throughout the ranking tests."""
    return [
        Fragment(
            id=0,
            location="instability/#Type-instability",
            page="Type instability",
            title="Type instability",
            text="global variable inside function",
            category=FragmentCategory.SECTION,
        ),
        Fragment(
            id=1,
            location="immutable/#Immutable-variables",
            page="Immutable variables",
            title="Immutable variables",
            text="mutable heap stack",
            category=FragmentCategory.SECTION,
        ),
    ]


@pytest.fixture
def documenter_js() -> str:
    return DOCUMENTER_JS


@pytest.fixture
def documenter_js_file(tmp_path, documenter_js):
    path = tmp_path / "search_index.js"
    path.write_text(documenter_js, encoding="utf-8")
    return path
