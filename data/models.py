"""
Shared records passed between the proxy routes, the price aggregator and the signal generator.
Field names are snake_case in Python and camelCase on the wire (isRealtime, stopLoss, ...).
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

AssetType = Literal["stock", "crypto", "metal"]
Action = Literal["BUY", "SELL", "HOLD"]
Timeframe = Literal["short", "medium", "long"]


class Asset(BaseModel):
    """A priced instrument. Immutable: a later fetch builds a new Asset for the same symbol."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    symbol: str
    name: str = ""
    type: AssetType
    price: float
    change: float = 0.0
    is_realtime: bool = False
    source: str = ""
    icon: str = ""
    exchange: Optional[str] = None
    volume: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    open: Optional[float] = None
    ref_price: Optional[float] = None
    price_change: Optional[float] = None
    time: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data):
        if isinstance(data, dict) and not data.get("name"):
            data = dict(data)
            data["name"] = data.get("symbol", "")
        return data

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("change", mode="before")
    @classmethod
    def _missing_change(cls, v):
        return 0.0 if v is None else v

    def wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Article(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    summary: Optional[str] = None
    date: Optional[str] = None
    source: str
    importance: Optional[str] = None


class Reasoning(BaseModel):
    model_config = ConfigDict(extra="ignore")

    technical: str = ""
    news: str = ""
    summary: str = ""


class Signal(BaseModel):
    """Trading signal for one asset. At most one live Signal per symbol on the dashboard."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = ""
    symbol: str
    name: str
    type: AssetType
    icon: str = ""
    action: Action
    entry: float
    stop_loss: float
    targets: List[float]
    risk_reward: str = "1:2"
    confidence: int = Field(ge=1, le=5)
    reasoning: Reasoning = Field(default_factory=Reasoning)
    timeframe_label: Timeframe = "short"
    horizon: str = ""
    origin: Literal["ai", "fallback", "scan"] = "ai"
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @model_validator(mode="after")
    def _fill_id(self):
        if not self.id:
            self.id = f"{self.symbol}-{int(datetime.now(timezone.utc).timestamp() * 1000)}"
        return self

    @field_validator("targets")
    @classmethod
    def _three_targets(cls, v: List[float]) -> List[float]:
        if len(v) != 3:
            raise ValueError("a signal carries exactly 3 take-profit levels")
        return v

    def wire(self) -> dict:
        return self.model_dump(by_alias=True)
