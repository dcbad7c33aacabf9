# tests/core/test_asset_probe_service.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from crawler.model import AssetProbe
from crawler.services.asset_probe_service import AssetProbeService, has_cache_lifetime

PAGE = "https://example.com/"


def _probe(url, status=200, redirects=0, **headers):
    return AssetProbe(url=url, status=status, final_url=url, redirect_count=redirects, headers=headers)


@pytest.fixture
def mock_http():
    http = MagicMock()
    http.head = AsyncMock()
    return http


def test_has_cache_lifetime():
    assert has_cache_lifetime("public, max-age=3600")
    assert has_cache_lifetime("s-maxage=60")
    assert not has_cache_lifetime("no-cache")
    assert not has_cache_lifetime("")


def test_concurrent_probes_share_one_request(mock_http):
    async def slow_head(url):
        await asyncio.sleep(0.01)
        return _probe(url)

    mock_http.head.side_effect = slow_head
    service = AssetProbeService(mock_http)

    async def run():
        return await asyncio.gather(*(service.probe("https://example.com/a.js") for _ in range(5)))

    results = asyncio.run(run())
    assert mock_http.head.await_count == 1
    assert all(result is results[0] for result in results)
    assert len(service) == 1


def test_failed_probe_is_cached_as_none(mock_http):
    mock_http.head.return_value = None
    service = AssetProbeService(mock_http)

    async def run():
        first = await service.probe("https://example.com/gone.css")
        second = await service.probe("https://example.com/gone.css")
        return first, second

    assert asyncio.run(run()) == (None, None)
    assert mock_http.head.await_count == 1


def test_collect_facts(mock_http):
    answers = {
        "https://example.com/app.js": _probe("https://example.com/app.js", **{"Cache-Control": "max-age=600"}),
        "https://example.com/site.css": _probe("https://example.com/site.css", **{"Set-Cookie": "sid=1"}),
        "https://cdn.example.net/hero.jpg": _probe(
            "https://cdn.example.net/hero.jpg", redirects=2,
            **{"Expires": "Thu, 01 Jan 2099 00:00:00 GMT", "Content-Length": "250000"}
        ),
        "https://example.com/small.png": _probe(
            "https://example.com/small.png", **{"Cache-Control": "max-age=60", "Content-Length": "1200"}
        ),
        "https://example.com/broken.png": _probe("https://example.com/broken.png", status=404),
    }
    mock_http.head.side_effect = lambda url: answers[url]

    http_requests = {
        "JavaScripts": ["https://example.com/app.js", "https://example.com/app.js"],
        "CSS": ["https://example.com/site.css"],
        "Images": [
            "https://cdn.example.net/hero.jpg",
            "https://example.com/small.png",
            "https://example.com/broken.png",
            "data:image/png;base64,AAAA",
        ],
    }
    facts = asyncio.run(AssetProbeService(mock_http).collect_facts(http_requests, PAGE, image_max_bytes=100000))

    assert facts["main_host"] == "example.com"
    assert facts["checked_static_assets"] == [
        "https://example.com/app.js",
        "https://example.com/site.css",
        "https://cdn.example.net/hero.jpg",
        "https://example.com/small.png",
    ]
    assert facts["missing_static_cache"] == ["https://example.com/site.css"]
    # The asset's own Set-Cookie does not count while the page sets none
    assert facts["cookie_domain_hits"] == []
    assert facts["asset_redirects"] == [{"url": "https://cdn.example.net/hero.jpg", "count": 2}]
    assert facts["large_images"] == [{"url": "https://cdn.example.net/hero.jpg", "bytes": 250000}]
    assert facts["largest_image"] == {"url": "https://cdn.example.net/hero.jpg", "bytes": 250000}
    # Duplicates and non-http URLs are never probed
    assert mock_http.head.call_count == 5


def test_collect_facts_without_image_limit_still_reports_largest(mock_http):
    mock_http.head.side_effect = lambda url: _probe(url, **{"Content-Length": "5000"})
    facts = asyncio.run(AssetProbeService(mock_http).collect_facts({"Images": ["https://example.com/a.jpg"]}, PAGE))
    assert facts["large_images"] == []
    assert facts["largest_image"] == {"url": "https://example.com/a.jpg", "bytes": 5000}


def test_collect_facts_weighs_lazy_images(mock_http):
    mock_http.head.side_effect = lambda url: _probe(
        url, **{"Content-Length": "900000" if url.endswith("lazy.jpg") else "1000"}
    )
    http_requests = {"Images": ["https://example.com/eager.jpg"]}
    image_urls = ["https://example.com/eager.jpg", "https://example.com/lazy.jpg", "https://example.com/lazy.jpg"]

    facts = asyncio.run(AssetProbeService(mock_http).collect_facts(
        http_requests, PAGE, image_max_bytes=100000, image_urls=image_urls
    ))
    assert facts["large_images"] == [{"url": "https://example.com/lazy.jpg", "bytes": 900000}]
    assert facts["largest_image"] == {"url": "https://example.com/lazy.jpg", "bytes": 900000}
    # Lazy images are weighed but are not part of the static asset checks
    assert facts["checked_static_assets"] == ["https://example.com/eager.jpg"]
    assert mock_http.head.call_count == 2


def test_page_cookie_marks_same_host_requests(mock_http):
    mock_http.head.side_effect = lambda url: _probe(url, **{"Cache-Control": "max-age=60"})
    http_requests = {
        "JavaScripts": ["https://cdn.example.net/lib.js"],
        "CSS": ["https://example.com/s.css", "https://example.com/s.css"],
        "Images": [],
        "Iframes": ["https://example.com/embed"],
    }
    service = AssetProbeService(mock_http)

    with_cookie = asyncio.run(service.collect_facts(http_requests, PAGE, page_sets_cookie=True))
    assert with_cookie["cookie_domain_hits"] == ["https://example.com/s.css", "https://example.com/embed"]

    without_cookie = asyncio.run(service.collect_facts(http_requests, PAGE))
    assert without_cookie["cookie_domain_hits"] == []
