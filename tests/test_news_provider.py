import os
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.news_provider import MAX_ARTICLES, NewsProvider, market_context, search_terms


class MockResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code
        self.content = text.encode()
        self.headers = {"content-type": "application/rss+xml"}


class MockClient:
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.requests = []
        self.is_closed = False

    async def get(self, url, params=None, **kwargs):
        self.requests.append((url, params))
        for pattern, resp in self.responses.items():
            if pattern in url:
                if isinstance(resp, Exception):
                    raise resp
                return resp
        return MockResponse("", 404)


def rss(items: list[str]) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?><rss version="2.0"><channel><title>Feed</title>'
        + "".join(items)
        + "</channel></rss>"
    )


def google_item(i):
    return (
        f"<item><title>VNM headline {i} - CafeF</title>"
        f"<pubDate>Mon, 12 Jan 2026 0{i}:00:00 GMT</pubDate></item>"
    )


VNEXPRESS_ITEMS = [
    "<item><title>Vinamilk (VNM) lãi quý kỷ lục</title>"
    "<description><![CDATA[<a href=\"https://vnexpress.net/x\"><img src=\"y.jpg\"></a></br>"
    "Cổ đông VNM nhận cổ tức tiền mặt cao nhất từ trước đến nay, mở rộng thị trường xuất khẩu.]]></description>"
    "<pubDate>Mon, 12 Jan 2026 08:00:00 +0700</pubDate></item>",
    "<item><title>Giá xăng giảm</title><description><![CDATA[Không liên quan]]></description></item>",
    "<item><title>VNM mở nhà máy mới</title><description><![CDATA[Mở rộng công suất]]></description></item>",
    "<item><title>VNM tăng trần</title><description><![CDATA[Phiên sáng]]></description></item>",
]


@pytest.fixture
def provider():
    return NewsProvider()


def test_search_terms_localized():
    assert search_terms("VNM", "stock") == "VNM cổ phiếu VNINDEX"
    assert search_terms("gold", "metal") == "gold giá vàng gold price"
    assert search_terms("BTC", None) == "BTC"


@pytest.mark.asyncio
async def test_merges_sources_and_caps(provider):
    client = MockClient({
        "news.google.com": MockResponse(rss([google_item(i) for i in range(6)])),
        "vnexpress.net": MockResponse(rss(VNEXPRESS_ITEMS)),
    })
    provider._client = client
    articles = await provider.get_articles("VNM", "stock")

    google = [a for a in articles if a["source"] == "Google News"]
    vnexpress = [a for a in articles if a["source"] == "VnExpress"]
    assert len(google) == 4
    assert google[0]["title"] == "VNM headline 0 - CafeF"
    assert google[0]["importance"] == "high"
    assert google[0]["date"].startswith("Mon, 12 Jan 2026")
    assert len(vnexpress) == 2
    assert articles[-1]["source"] == "Technical Analysis"
    assert len(articles) <= MAX_ARTICLES

    url, params = client.requests[0]
    assert params["q"] == "VNM cổ phiếu VNINDEX"
    assert params["ceid"] == "VN:vi"


@pytest.mark.asyncio
async def test_vnexpress_summary_is_plain_text(provider):
    provider._client = MockClient({
        "news.google.com": MockResponse("", 500),
        "vnexpress.net": MockResponse(rss(VNEXPRESS_ITEMS)),
    })
    articles = await provider.get_articles("vnm", "stock")
    first = articles[0]
    assert first["title"] == "Vinamilk (VNM) lãi quý kỷ lục"
    assert "<" not in first["summary"]
    assert first["summary"].startswith("Cổ đông VNM")
    assert len(first["summary"]) <= 150


@pytest.mark.asyncio
async def test_total_failure_returns_context(provider):
    provider._client = MockClient({
        "news.google.com": ConnectionError("dns"),
        "vnexpress.net": MockResponse("", 503),
    })
    articles = await provider.get_articles("XAU", "metal")
    assert len(articles) == 3
    assert articles[0]["source"] == "Gold Analysis"
    assert all(a["title"] and a["date"] for a in articles)


def test_market_context_by_session():
    open_session = market_context("FPT", "stock", now=datetime(2026, 1, 12, 10, 0))
    closed = market_context("FPT", "stock", now=datetime(2026, 1, 12, 20, 0))
    assert open_session[1]["summary"] != closed[1]["summary"]
    assert open_session[0]["date"] == "12/01/2026"


def test_market_context_generic():
    articles = market_context("BTC", None)
    assert len(articles) == 1
    assert "BTC" in articles[0]["title"]
