"""
Price display helpers.

VN stock prices travel in thousands of VND (38.75 == 38,750 VND). A value >= 1000 is taken to be
full VND already, so formatting is idempotent across both units.
"""

STOCK_UNIT_THRESHOLD = 1000


def _stock_vnd(price: float) -> int:
    return round(price if price >= STOCK_UNIT_THRESHOLD else price * 1000)


def format_price(price, asset_type: str) -> str:
    if not price:
        return "-"
    if asset_type == "stock":
        return f"{_stock_vnd(price):,} đ"
    return f"${price:,.2f}"


def format_change(change) -> str:
    change = change or 0.0
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.2f}%"


def format_price_for_prompt(price, asset_type: str) -> str:
    if not price:
        return "N/A"
    if asset_type == "stock":
        return f"{_stock_vnd(price):,} VND"
    return f"${price:,.2f}"
