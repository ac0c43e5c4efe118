import asyncio
from typing import Awaitable, Callable, Sequence


class UpstreamError(Exception):
    """Non-2xx reply from a third-party provider. Carries the reply so a proxy can relay it."""

    def __init__(self, provider: str, status_code: int, body: bytes = b"", content_type: str = "application/json"):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        self.content_type = content_type
        super().__init__(f"{provider} returned HTTP {status_code}")


Strategy = tuple[str, Callable[[], Awaitable]]


async def fetch_first(category: str, strategies: Sequence[Strategy], timeout: float | None = None):
    """
    Ordered provider chain. Tries each strategy until one returns a non-empty result.
    Returns (provider_name, result), or (None, None) when every strategy failed.
    """
    for name, fetch in strategies:
        try:
            if timeout:
                result = await asyncio.wait_for(fetch(), timeout=timeout)
            else:
                result = await fetch()
            if result:
                return name, result
            print(f"[FALLBACK] {category} {name} returned nothing")
        except Exception as e:
            print(f"[FALLBACK] {category} {name} failed: {e}")
    return None, None


def parse_num(val) -> float | None:
    if val is None or isinstance(val, bool):
        return None
    try:
        return float(str(val).replace(",", "").replace("%", "").strip())
    except (ValueError, TypeError):
        return None


def pick(raw: dict, *keys):
    """First present, non-empty value among several provider spellings of one field."""
    for key in keys:
        val = raw.get(key)
        if val is not None and val != "":
            return val
    return None


def to_thousands(price: float | None) -> float | None:
    """VN stock prices travel in thousands of VND. Values >= 1000 are full VND."""
    if price is None:
        return None
    return price / 1000 if price >= 1000 else price
