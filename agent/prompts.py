from core.formatting import format_change, format_price, format_price_for_prompt

SYSTEM_PROMPT = """You are a senior financial analyst with 20+ years covering Vietnamese equities,
precious metals and crypto markets.

## Your Job
1. Technical analysis: RSI, MACD, Bollinger Bands, support/resistance
2. Judge trend and momentum for the requested horizon
3. Give a concrete Entry, Stop Loss and exactly 3 Take Profit levels
4. Explain the call clearly, in Vietnamese

## Rules
- Prices use the same unit as the quoted current price (VN stocks: thousands of VND, metals and crypto: USD)
- For BUY or HOLD the stop loss sits BELOW entry; for SELL it sits ABOVE entry
- Confidence is an integer from 1 (weak) to 5 (very strong)

Return ONLY valid JSON. No other text."""

TIMEFRAME_LABELS = {
    "short": "1-7 days",
    "medium": "1-4 weeks",
    "long": "1-6 months",
}

TIMEFRAME_BRIEFS = {
    "short": """Swing/scalp horizon (1-7 days).
- Emphasis: RSI(14) extremes, MACD crossovers, intraday support/resistance, volume spikes
- Stop loss: tight, 2-4% from entry
- Targets: 3 close levels, roughly 3% / 6% / 9%""",
    "medium": """Position horizon (1-4 weeks).
- Emphasis: EMA20/EMA50 trend, MACD histogram momentum, Bollinger Band squeezes, sector flows
- Stop loss: 5-8% from entry, below the last swing low
- Targets: 3 levels spaced on resistance zones, roughly 8% / 15% / 22%""",
    "long": """Investment horizon (1-6 months).
- Emphasis: EMA200 and weekly trend, fundamentals (P/E, ROE, earnings growth), macro backdrop
- Stop loss: wide, 10-15% from entry, below major weekly support
- Targets: 3 staged levels, roughly 15% / 30% / 50%""",
}

ASSET_TYPE_LABELS = {
    "stock": "Vietnamese equity",
    "crypto": "Cryptocurrency",
    "metal": "Precious metal",
}

SIGNAL_SCHEMA = """{
  "action": "BUY" | "SELL" | "HOLD",
  "entry": <entry price>,
  "stopLoss": <stop loss price>,
  "targets": [<TP1>, <TP2>, <TP3>],
  "riskReward": "1:X",
  "confidence": <1-5>,
  "reasoning": {
    "technical": "<technical read>",
    "news": "<news and events that matter>",
    "summary": "<one-paragraph rationale>"
  }
}"""


def build_analysis_prompt(asset, timeframe: str, headlines: list | None = None) -> str:
    """User prompt for a single-asset signal."""
    lines = [
        "Analyze this asset in detail:",
        "",
        "📊 Snapshot:",
        f"- Asset: {asset.name} ({asset.symbol})",
        f"- Class: {ASSET_TYPE_LABELS.get(asset.type, 'Asset')}",
        f"- Current price: {format_price_for_prompt(asset.price, asset.type)}",
        f"- Change: {format_change(asset.change)}",
        f"- Horizon: {TIMEFRAME_LABELS[timeframe]}",
        "",
        "⏱ Strategy brief:",
        TIMEFRAME_BRIEFS[timeframe],
    ]

    if headlines:
        lines += ["", "📰 Recent headlines:"]
        lines += [f"- {h}" for h in headlines]

    lines += ["", "🎯 Return JSON:", SIGNAL_SCHEMA]
    return "\n".join(lines)


SCAN_SYSTEM_PROMPT = "You are a financial markets expert. Return ONLY valid JSON."


def build_scan_prompt(candidates: list, timeframe: str) -> str:
    """User prompt asking the model to pick the best 3-5 buy setups among the candidates."""
    watch = "\n".join(
        f"- {a.symbol} ({a.name}): price {format_price(a.price, a.type)}, change {a.change:.2f}%"
        for a in candidates
    )
    return f"""Scan the assets below and pick the 3-5 with the best BUY opportunity over {TIMEFRAME_LABELS[timeframe]}:

{watch}

Scoring rubric:
1. Oversold condition (low RSI)
2. Price near a strong support zone
3. Bullish reversal signal
4. Attractive risk/reward (better than 1:2)

Return a JSON array in this format:
[
  {{
    "symbol": "...",
    "action": "BUY",
    "entry": <number>,
    "stopLoss": <number>,
    "targets": [<t1>, <t2>, <t3>],
    "confidence": <1-5>,
    "reason": "<short rationale>"
  }}
]

Only list the strongest buys, not every asset."""


CONNECTION_TEST_SYSTEM = "Answer briefly."
CONNECTION_TEST_PROMPT = 'Say "hello" if you are working normally.'
