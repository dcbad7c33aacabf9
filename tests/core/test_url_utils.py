# tests/core/test_url_utils.py
import pytest

from crawler.utils.url_utils import UrlUtils
from parser.utils.text_utils import clean_tag_text, difference, intersect, keywords

BASE = "https://example.com/blog/post"


@pytest.mark.parametrize("url", [
    "https://example.com/a/b?x=1",
    "http://other.org/",
    "https://example.com",
])
def test_resolve_absolute_url_is_identity(url):
    assert UrlUtils.resolve_url(url, BASE) == url


def test_resolve_drops_fragment():
    assert UrlUtils.resolve_url("https://example.com/page#section", BASE) == "https://example.com/page"
    assert UrlUtils.resolve_url("/page#top", BASE) == "https://example.com/page"


def test_resolve_relative_forms():
    assert UrlUtils.resolve_url("//cdn.example.net/app.js", BASE) == "https://cdn.example.net/app.js"
    assert UrlUtils.resolve_url("/about", BASE) == "https://example.com/about"
    # Relative references are resolved from the site root
    assert UrlUtils.resolve_url("img/logo.png", BASE) == "https://example.com/img/logo.png"


def test_resolve_passthrough_schemes():
    assert UrlUtils.resolve_url("mailto:info@example.com", BASE) == "mailto:info@example.com"
    assert UrlUtils.resolve_url("tel:+123", BASE) == "tel:+123"
    assert UrlUtils.resolve_url("data:image/png;base64,AAA", BASE) == "data:image/png;base64,AAA"


def test_resolve_unescapes_markup_escapes():
    assert UrlUtils.resolve_url("/search\\?q=1\\&p=2", BASE) == "https://example.com/search?q=1&p=2"


def test_is_internal_url_same_host_and_subdomains():
    assert UrlUtils.is_internal_url("https://example.com/x", BASE)
    assert UrlUtils.is_internal_url("https://EXAMPLE.com/x", BASE)
    assert UrlUtils.is_internal_url("https://blog.example.com/x", BASE)


def test_is_internal_url_rejects_lookalikes():
    assert not UrlUtils.is_internal_url("https://example.com.evil.org/", BASE)
    assert not UrlUtils.is_internal_url("https://notexample.com/", BASE)
    assert not UrlUtils.is_internal_url("mailto:info@example.com", BASE)


def test_normalize_url_for_canonical():
    assert UrlUtils.normalize_url_for_canonical("HTTPS://Example.COM:443/") == "https://example.com"
    assert UrlUtils.normalize_url_for_canonical("http://example.com:8080/a/") == "http://example.com:8080/a"
    assert UrlUtils.normalize_url_for_canonical("https://example.com/a?b=1") == "https://example.com/a?b=1"


def test_clean_url():
    assert UrlUtils.clean_url("https://www.example.com/") == "example.com"
    assert UrlUtils.clean_url("http://example.com/path/") == "example.com/path/"


def test_ensure_scheme():
    assert UrlUtils.ensure_scheme("example.com") == "https://example.com"
    assert UrlUtils.ensure_scheme("http://example.com") == "http://example.com"


def test_is_unfriendly():
    assert UrlUtils.is_unfriendly("https://example.com/?p=1")
    assert UrlUtils.is_unfriendly("https://example.com/my_page")
    assert not UrlUtils.is_unfriendly("https://example.com/my-page")


# --- Text helpers ---

def test_clean_tag_text_collapses_whitespace():
    assert clean_tag_text("  Hello \n\t  World  ") == "Hello World"
    assert clean_tag_text(None) == ""


def test_keywords_split_on_non_word_characters():
    assert keywords("Best SEO-Tools, 2024!") == ["best", "seo", "tools", "2024"]
    assert keywords("") == []


def test_intersect_and_difference_keep_order():
    assert intersect(["a", "b", "c", "a"], ["a", "c"]) == ["a", "c", "a"]
    assert difference(["a", "b", "c"], ["b"]) == ["a", "c"]
