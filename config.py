import os

# Chat-completion relay (OpenAI-compatible upstream)
CHAT_UPSTREAM_URL = os.getenv("CHAT_UPSTREAM_URL", "http://api.trollllm.xyz/v1")
DEFAULT_CHAT_MODEL = os.getenv("DEFAULT_CHAT_MODEL", "gpt-4o-mini")
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "claude-sonnet-4-5-20250929")
DEFAULT_TEMPERATURE = float(os.getenv("DEFAULT_TEMPERATURE", "0.7"))
DEFAULT_MAX_TOKENS = int(os.getenv("DEFAULT_MAX_TOKENS", "2000"))

# Vietnamese equity feeds
CAFEF_BOARD_URL = os.getenv("CAFEF_BOARD_URL", "https://banggia.cafef.vn/stockhandler.ashx")
CAFEF_QUOTE_URL = os.getenv("CAFEF_QUOTE_URL", "https://banggia.cafef.vn/stockhandler.ashx")
TCBS_BARS_URL = os.getenv(
    "TCBS_BARS_URL",
    "https://apipubaws.tcbs.com.vn/stock-insight/v2/stock/bars-long-term",
)
SSI_BOARD_URL = os.getenv(
    "SSI_BOARD_URL",
    "https://iboard-api.ssi.com.vn/statistics/getliststockdata",
)
WICHART_QUOTE_URL = os.getenv("WICHART_QUOTE_URL", "https://api.wichart.vn/vietnambiz/vi-mo/quote")

# Crypto and precious metals
COINGECKO_BASE_URL = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY", "")
METALS_SPOT_URL = os.getenv("METALS_SPOT_URL", "https://api.gold-api.com/price")

# News feeds
GOOGLE_NEWS_RSS_URL = os.getenv("GOOGLE_NEWS_RSS_URL", "https://news.google.com/rss/search")
VNEXPRESS_RSS_URL = os.getenv("VNEXPRESS_RSS_URL", "https://vnexpress.net/rss/kinh-doanh.rss")

# Timeouts (seconds)
CHAT_TIMEOUT = 60.0
BOARD_TIMEOUT = 15.0
QUOTE_TIMEOUT = 10.0
BATCH_TIMEOUT = 30.0
COINGECKO_TIMEOUT = 15.0
METALS_TIMEOUT = 10.0
GOOGLE_NEWS_TIMEOUT = 8.0
VNEXPRESS_TIMEOUT = 5.0

# Where the aggregator and chat client reach the proxy routes; empty = in-process
PROXY_BASE_URL = os.getenv("PROXY_BASE_URL", "")

SETTINGS_FILE = os.getenv(
    "SETTINGS_FILE",
    os.path.join(os.path.expanduser("~"), ".finai", "settings.json"),
)
SETTINGS_PREFIX = os.getenv("SETTINGS_PREFIX", "finai_")

RATE_LIMIT = os.getenv("RATE_LIMIT", "120/minute")
