# tests/core/test_fact_aggregate_service.py
import pytest
from pydantic import ValidationError

from parser.model import PageFacts
from parser.services.fact_aggregate_service import FactAggregateService

BASE = "https://example.com/"

HTML = """<html><head>
<title>Red Running Shoes</title>
<meta name="description" content="Shoes for running fast">
<meta property="og:title" content="Shoes">
<meta name="twitter:title" content="Shoes">
</head><body>
<h1>Running</h1>
<div style="color: red">Red</div>
<svg style="display:none"></svg>
<p style="">Empty style</p>
</body></html>"""


@pytest.fixture
def facts(make_soup, report_config):
    return FactAggregateService().aggregate(make_soup(HTML), HTML, BASE, report_config)


def test_aggregate_returns_typed_facts(facts):
    assert isinstance(facts, PageFacts)
    assert facts.title == "Red Running Shoes"
    assert facts.h1_count == 1


def test_keyword_consistency(facts):
    assert facts.title_keywords == ["red", "running", "shoes"]
    consistency = facts.keyword_consistency
    assert consistency["in_meta_description"] == ["running", "shoes"]
    assert consistency["missing_in_meta"] == ["red"]
    assert consistency["in_headings"] == ["running"]
    assert consistency["missing_in_headings"] == ["red", "shoes"]


def test_inline_css_skips_svg_and_empty_styles(facts):
    assert facts.inline_css == ["color: red"]


def test_social_data_split_out(facts):
    assert facts.open_graph_data == {"og:title": "Shoes"}
    assert facts.twitter_data == {"twitter:title": "Shoes"}


def test_extra_facts_are_merged(make_soup, report_config):
    facts = FactAggregateService().aggregate(
        make_soup(HTML), HTML, BASE, report_config, extra_facts={"host_str": "example.com", "robots": False}
    )
    assert facts.host_str == "example.com"
    assert facts.robots is False


def test_unknown_fact_keys_are_rejected(make_soup, report_config):
    with pytest.raises(ValidationError):
        FactAggregateService().aggregate(
            make_soup(HTML), HTML, BASE, report_config, extra_facts={"no_such_fact": 1}
        )


def test_custom_extractor_list(make_soup, report_config):
    service = FactAggregateService(extractors=[lambda soup, raw, base, config: {"doc_type": "html"}])
    facts = service.aggregate(make_soup(HTML), HTML, BASE, report_config)
    assert facts.doc_type == "html"
    # Everything no extractor produced falls back to its default
    assert facts.title is None
    assert facts.page_links == {"Internals": [], "Externals": []}
