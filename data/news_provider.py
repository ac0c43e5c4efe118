"""
Financial news context for AI analysis.

Sources, fetched in parallel:
  - Google News RSS search (query localized per asset class)
  - VnExpress business RSS, filtered to items mentioning the query
  - a static technical/macro indicator card
When nothing comes back, a synthesized market-context set is returned instead, so the
news route never fails outright.
"""
import asyncio
import re
from datetime import datetime
from html import escape

import httpx
from bs4 import BeautifulSoup

from config import GOOGLE_NEWS_RSS_URL, GOOGLE_NEWS_TIMEOUT, VNEXPRESS_RSS_URL, VNEXPRESS_TIMEOUT

MAX_ARTICLES = 8
GOOGLE_NEWS_LIMIT = 4
VNEXPRESS_LIMIT = 2
SUMMARY_CHARS = 150


def _clean(text: str) -> str:
    """Strip markup left inside RSS fields (CDATA descriptions carry HTML)."""
    if not text:
        return ""
    return BeautifulSoup(text, "html.parser").get_text(" ", strip=True)


_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)


def _rss_items(xml: str) -> list:
    # html.parser does not reliably keep CDATA outside foreign content; inline it as text
    xml = _CDATA.sub(lambda m: escape(m.group(1), quote=False), xml)
    soup = BeautifulSoup(xml, "html.parser")
    return soup.find_all("item")


def _field(item, name: str) -> str:
    tag = item.find(name)
    return _clean(tag.get_text()) if tag else ""


def _today() -> str:
    return datetime.now().strftime("%d/%m/%Y")


def search_terms(query: str, asset_type: str | None) -> str:
    if asset_type == "stock":
        return f"{query} cổ phiếu VNINDEX"
    if asset_type in ("metal", "gold"):
        return f"{query} giá vàng gold price"
    return query


def market_indicators(query: str, asset_type: str | None) -> list[dict]:
    if asset_type == "stock":
        return [{
            "title": f"📊 Technical read on {query}",
            "summary": "RSI, MACD, EMA20/50/200: trend direction and entry/exit zones from recent price action.",
            "date": _today(),
            "source": "Technical Analysis",
            "importance": "critical",
        }]
    if asset_type in ("metal", "gold"):
        return [{
            "title": "📈 Macro drivers of gold and silver",
            "summary": "Fed funds rate, US CPI, DXY index and the US 10Y yield set the trend for precious metals.",
            "date": _today(),
            "source": "Macro Analysis",
            "importance": "critical",
        }]
    return []


def market_context(query: str, asset_type: str | None, now: datetime | None = None) -> list[dict]:
    now = now or datetime.now()
    today = now.strftime("%d/%m/%Y")
    market_open = 9 <= now.hour < 15

    if asset_type == "stock":
        return [
            {
                "title": f"📊 Combined view on {query}",
                "summary": "Technicals (RSI, MACD, Bollinger Bands) with fundamentals (P/E, ROE, revenue growth), "
                           "sector trend and competitive position.",
                "date": today,
                "source": "Comprehensive Analysis",
                "importance": "critical",
            },
            {
                "title": "📈 VN-Index trend",
                "summary": "Session in progress: watch volume, liquidity and the bluechips leading the index."
                           if market_open else
                           "Market closed: judge the trend from the previous session and overnight news.",
                "date": today,
                "source": "Market Context",
                "importance": "high",
            },
            {
                "title": "🌍 Macro factors for Vietnamese equities",
                "summary": "USD/VND rate, SBV policy rates, foreign flows, Fed policy and the global growth outlook.",
                "date": today,
                "source": "Macro Context",
                "importance": "medium",
            },
        ]

    if asset_type in ("metal", "gold"):
        return [
            {
                "title": "🥇 World gold and silver prices",
                "summary": "XAU/USD and XAG/USD follow (1) Fed rate policy, (2) US CPI, (3) the DXY dollar index, "
                           "(4) geopolitical stress.",
                "date": today,
                "source": "Gold Analysis",
                "importance": "critical",
            },
            {
                "title": "📊 Precious metals technicals",
                "summary": "Key Fibonacci levels, major support/resistance zones, RSI extremes and long-term chart patterns.",
                "date": today,
                "source": "Technical",
                "importance": "high",
            },
            {
                "title": "🏦 Physical supply and demand",
                "summary": "Central bank buying (notably China and India), mine output and safe-haven hoarding.",
                "date": today,
                "source": "Fundamental",
                "importance": "medium",
            },
        ]

    return [{
        "title": f"💼 Market view: {query}",
        "summary": "Technical analysis, news flow and macro factors combined into an investment view.",
        "date": today,
        "source": "FinAI Analysis",
        "importance": "high",
    }]


class NewsProvider:
    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def fetch_google_news(self, query: str, asset_type: str | None) -> list[dict]:
        client = await self._get_client()
        resp = await client.get(
            GOOGLE_NEWS_RSS_URL,
            params={"q": search_terms(query, asset_type), "hl": "vi", "gl": "VN", "ceid": "VN:vi"},
            timeout=GOOGLE_NEWS_TIMEOUT,
        )
        if resp.status_code != 200:
            raise RuntimeError(f"Google News HTTP {resp.status_code}")
        return [
            {
                "title": _field(item, "title"),
                "date": _field(item, "pubdate"),
                "source": "Google News",
                "importance": "high",
            }
            for item in _rss_items(resp.text)[:GOOGLE_NEWS_LIMIT]
        ]

    async def fetch_vnexpress_news(self, query: str) -> list[dict]:
        client = await self._get_client()
        resp = await client.get(VNEXPRESS_RSS_URL, timeout=VNEXPRESS_TIMEOUT)
        if resp.status_code != 200:
            return []
        needle = query.lower()
        matching = [item for item in _rss_items(resp.text) if needle in item.get_text().lower()]
        return [
            {
                "title": _field(item, "title"),
                "summary": _field(item, "description")[:SUMMARY_CHARS],
                "date": _field(item, "pubdate"),
                "source": "VnExpress",
                "importance": "medium",
            }
            for item in matching[:VNEXPRESS_LIMIT]
        ]

    async def get_articles(self, query: str, asset_type: str | None = None) -> list[dict]:
        google, vnexpress = await asyncio.gather(
            self.fetch_google_news(query, asset_type),
            self.fetch_vnexpress_news(query),
            return_exceptions=True,
        )

        articles = []
        for name, result in (("Google News", google), ("VnExpress", vnexpress)):
            if isinstance(result, Exception):
                print(f"[NEWS API] {name} failed: {result}")
            else:
                articles.extend(a for a in result if a.get("title"))

        if not articles:
            return market_context(query, asset_type)

        articles.extend(market_indicators(query, asset_type))
        return articles[:MAX_ARTICLES]
