"""
Static reference tables.

Approximate prices used when every live provider is down, so callers always get something
renderable. Stock prices are in thousands of VND, metals and crypto in USD. Last reviewed 01/2026.
"""

STATIC_NOTE = "Reference price, last reviewed 01/2026"

VN_STOCK_NAMES = {
    "VNM": "Vinamilk", "FPT": "FPT Corp", "VIC": "Vingroup", "VHM": "Vinhomes",
    "VCB": "Vietcombank", "BID": "BIDV", "CTG": "VietinBank", "TCB": "Techcombank",
    "MBB": "MB Bank", "VPB": "VPBank", "HPG": "Hoa Phat", "MSN": "Masan",
    "VRE": "Vincom Retail", "PLX": "Petrolimex", "GAS": "PV Gas", "SAB": "Sabeco",
    "ACB": "ACB Bank", "STB": "Sacombank", "SSI": "SSI Securities", "VJC": "Vietjet Air",
    "NVL": "Novaland", "VND": "VNDirect", "HDB": "HDBank", "POW": "PV Power",
    "REE": "REE Corp",
}

POPULAR_VN_STOCKS = [
    {"symbol": "VNM", "price": 68.5, "change": -0.7},
    {"symbol": "FPT", "price": 148.2, "change": 1.5},
    {"symbol": "VIC", "price": 41.3, "change": 0.5},
    {"symbol": "VHM", "price": 38.9, "change": -0.3},
    {"symbol": "VCB", "price": 92.5, "change": 0.8},
    {"symbol": "BID", "price": 50.2, "change": 0.4},
    {"symbol": "CTG", "price": 36.8, "change": -0.5},
    {"symbol": "TCB", "price": 55.4, "change": 1.2},
    {"symbol": "MBB", "price": 27.3, "change": 0.7},
    {"symbol": "VPB", "price": 19.8, "change": -1.1},
    {"symbol": "HPG", "price": 26.5, "change": 2.3},
    {"symbol": "MSN", "price": 72.1, "change": 0.9},
    {"symbol": "VRE", "price": 21.5, "change": -0.2},
    {"symbol": "PLX", "price": 39.7, "change": 0.3},
    {"symbol": "GAS", "price": 75.8, "change": 1.8},
    {"symbol": "SAB", "price": 58.2, "change": -0.8},
    {"symbol": "ACB", "price": 26.1, "change": 0.6},
    {"symbol": "STB", "price": 35.4, "change": 1.4},
    {"symbol": "SSI", "price": 38.7, "change": 2.1},
    {"symbol": "VJC", "price": 98.5, "change": 0.4},
    {"symbol": "NVL", "price": 10.8, "change": -2.5},
    {"symbol": "VND", "price": 17.2, "change": 1.9},
    {"symbol": "HDB", "price": 24.6, "change": 0.5},
    {"symbol": "POW", "price": 11.5, "change": 0.8},
    {"symbol": "REE", "price": 52.3, "change": -0.4},
]

# Fetched with real-time prices on every dashboard load
WATCHLIST_SYMBOLS = ["VNM", "FPT", "VIC", "VHM", "VCB", "TCB", "HPG", "MSN", "BID", "MBB", "ACB", "SSI"]

FALLBACK_METALS = [
    {"id": "xau", "symbol": "XAU/USD", "name": "Spot Gold", "icon": "🥇", "type": "metal",
     "price": 4900.0, "change": 0.0, "source": "Fallback", "isRealtime": False},
    {"id": "xag", "symbol": "XAG/USD", "name": "Spot Silver", "icon": "🥈", "type": "metal",
     "price": 85.0, "change": 0.0, "source": "Fallback", "isRealtime": False},
]

FALLBACK_CRYPTO = [
    {"symbol": "BTC", "name": "Bitcoin", "icon": "₿", "type": "crypto", "price": 105000.0},
    {"symbol": "ETH", "name": "Ethereum", "icon": "Ξ", "type": "crypto", "price": 3300.0},
    {"symbol": "BNB", "name": "BNB", "icon": "◈", "type": "crypto", "price": 650.0},
    {"symbol": "XRP", "name": "Ripple", "icon": "✕", "type": "crypto", "price": 3.1},
    {"symbol": "SOL", "name": "Solana", "icon": "◎", "type": "crypto", "price": 240.0},
    {"symbol": "ADA", "name": "Cardano", "icon": "₳", "type": "crypto", "price": 1.0},
]


def stock_name(symbol: str) -> str:
    return VN_STOCK_NAMES.get(symbol.upper(), symbol.upper())


def static_stock_rows() -> list[dict]:
    """Reference stock table in the proxy's tick shape."""
    return [
        {
            "symbol": s["symbol"],
            "name": stock_name(s["symbol"]),
            "price": s["price"],
            "changePercent": s["change"],
            "exchange": "HOSE",
            "isRealtime": False,
            "source": "Fallback",
            "note": STATIC_NOTE,
        }
        for s in POPULAR_VN_STOCKS
    ]


def static_stock_row(symbol: str) -> dict | None:
    symbol = symbol.upper()
    for row in static_stock_rows():
        if row["symbol"] == symbol:
            return row
    return None


def static_metal_rows() -> list[dict]:
    return [dict(m) for m in FALLBACK_METALS]


def static_crypto_rows() -> list[dict]:
    return [
        {**c, "change": 0.0, "source": "Fallback", "isRealtime": False}
        for c in FALLBACK_CRYPTO
    ]
