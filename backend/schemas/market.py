"""
schemas/market.py
──────────────────
Typed records for the CoinGecko payloads this API consumes.

Only the fields the frontend actually reads are declared and validated.
Each record also keeps the JSON object it was validated from and
serialises back to exactly that object (same keys, same order, same
numeric types), so clients receive CoinGecko's rows untouched.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    model_serializer,
    model_validator,
)

Number = Union[int, float]


class Sparkline(BaseModel):
    """Seven-day hourly price series attached to a market row."""

    model_config = ConfigDict(extra="allow")

    price: List[Optional[Number]] = Field(default_factory=list)


class _UpstreamRecord(BaseModel):
    """Validated view over a CoinGecko object that serialises as received."""

    model_config = ConfigDict(extra="allow")

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @model_validator(mode="wrap")
    @classmethod
    def _keep_raw(cls, data: Any, handler):
        record = handler(data)
        if isinstance(data, dict):
            record._raw = dict(data)
        return record

    @model_serializer(mode="wrap")
    def _emit_raw(self, handler):
        if self._raw:
            return self._raw
        return handler(self)


class CoinMarket(_UpstreamRecord):
    """
    One row of ``GET /coins/markets``.

    Attributes:
        id:                          CoinGecko identifier (e.g. ``bitcoin``).
        symbol:                      Ticker symbol (e.g. ``btc``).
        name:                        Display name.
        image:                       Logo URL.
        current_price:               Spot price in the quote currency.
        market_cap:                  Market capitalisation.
        market_cap_rank:             Rank by market cap (``None`` if unranked).
        price_change_percentage_24h: 24 h change in percent.
        sparkline_in_7d:             Present when ``sparkline=true`` was requested.
    """

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[Number] = None
    market_cap: Optional[Number] = None
    market_cap_rank: Optional[int] = None
    price_change_percentage_24h: Optional[Number] = None
    sparkline_in_7d: Optional[Sparkline] = None


class CoinDetail(_UpstreamRecord):
    """``GET /coins/{id}`` — identity fields typed, the rest passed through."""

    id: str
    symbol: str
    name: str
