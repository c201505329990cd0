"""
Normalized Data Schemas

This module defines Pydantic models for every entity the Mt. Gox client returns.
Raw exchange records (numbers as strings, dates as epoch seconds) are parsed into
these typed, immutable value objects through their from_raw() constructors.

Models:
    - Offer: Common fields for any priced market entry (price, amount, currency)
    - Ask / Bid: Public order book entries with a fee-adjusted effective price
    - Order / Buy / Sell: The account's own resting orders
    - Trade: A historical executed transaction
    - Ticker: Market summary snapshot
    - MinAsk / MaxBid: Best ask and best bid snapshots
    - Balance: Funds held in one currency
    - Offers / Orders: Sorted collections returned by the aggregation functions

All monetary values are Decimal. All models are frozen: once built from a
response they are never mutated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Mapping
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.utils.parsing import (
    price_amount_pair,
    require_field,
    to_datetime,
    to_decimal,
    to_int,
    MalformedResponseError,
)


# ============================================
# Base Offer Model
# ============================================

class Offer(BaseModel):
    """
    Base model for every priced market entry.

    Ask, Bid, Buy and Sell share this field layout; each subclass pins a
    `side` discriminant so the variant is explicit in the data.

    Attributes:
        price: Price per BTC in price_currency
        amount: Amount of BTC offered
        price_currency: Quote currency code in uppercase
    """

    model_config = ConfigDict(frozen=True)

    price: Decimal = Field(
        ...,
        ge=0,
        description="Price per BTC in the quote currency"
    )

    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount of BTC"
    )

    price_currency: str = Field(
        ...,
        description="Quote currency code",
        examples=["USD", "EUR"]
    )

    @field_validator('price_currency')
    @classmethod
    def validate_price_currency(cls, v: str) -> str:
        """Ensure currency is uppercase"""
        return v.upper()


# ============================================
# Order Book Entries
# ============================================

class Ask(Offer):
    """
    Public sell offer from the order book.

    Example:
        >>> ask = Ask.from_raw(["101.5", "2.0"], currency="USD")
        >>> ask.effective_price(Decimal("0"))
        Decimal('101.5')
    """

    side: Literal["ask"] = "ask"

    @classmethod
    def from_raw(cls, raw: Any, currency: str) -> "Ask":
        price, amount = price_amount_pair(raw, "ask")
        return cls(price=price, amount=amount, price_currency=currency)

    def effective_price(self, commission: Decimal) -> Decimal:
        """Price a buyer effectively pays once commission is added"""
        return self.price / (1 - Decimal(str(commission)))


class Bid(Offer):
    """
    Public buy offer from the order book.
    """

    side: Literal["bid"] = "bid"

    @classmethod
    def from_raw(cls, raw: Any, currency: str) -> "Bid":
        price, amount = price_amount_pair(raw, "bid")
        return cls(price=price, amount=amount, price_currency=currency)

    def effective_price(self, commission: Decimal) -> Decimal:
        """Price a seller effectively receives once commission is deducted"""
        return self.price * (1 - Decimal(str(commission)))


# ============================================
# Account Orders
# ============================================

class Order(Offer):
    """
    One of the account's own resting orders.

    Mt. Gox returns orders implicitly in the account's main currency, so the
    configured quote currency is used as price_currency.

    Raw Format:
        {"oid": "abc-123", "date": 1357000000, "amount": "1.0", "price": "13.5", "type": 2}

    Additional Attributes:
        id: Exchange-assigned order identifier
        date: When the order was placed (UTC)
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Exchange-assigned order identifier"
    )

    date: datetime = Field(
        ...,
        description="Order placement time in UTC"
    )

    @classmethod
    def from_raw(cls, record: Mapping[str, Any], currency: str) -> "Order":
        context = cls.__name__.lower()
        return cls(
            id=str(require_field(record, "oid", context)),
            date=to_datetime(require_field(record, "date", context), "date", context),
            amount=to_decimal(require_field(record, "amount", context), "amount", context),
            price=to_decimal(require_field(record, "price", context), "price", context),
            price_currency=currency,
        )


class Buy(Order):
    """Resting order to buy BTC"""

    side: Literal["buy"] = "buy"


class Sell(Order):
    """Resting order to sell BTC"""

    side: Literal["sell"] = "sell"


# ============================================
# Trade Schema
# ============================================

TRADE_SIDES = {
    "buy": "buy",
    "bid": "buy",
    "sell": "sell",
    "ask": "sell",
}


class Trade(BaseModel):
    """
    Historical executed transaction.

    Raw Format:
        {"id": 1234, "date": 1357000000, "price": "13.5", "amount": "0.5", "type": "bid"}

    The side is normalized to "buy"/"sell"; Mt. Gox reports "bid"/"ask".
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0, description="Exchange trade identifier")
    date: datetime = Field(..., description="Execution time in UTC")
    price: Decimal = Field(..., ge=0)
    amount: Decimal = Field(..., ge=0)
    side: Literal["buy", "sell"]

    @classmethod
    def from_raw(cls, record: Mapping[str, Any]) -> "Trade":
        raw_side = require_field(record, "type", "trade")
        side = TRADE_SIDES.get(str(raw_side).lower())
        if side is None:
            raise MalformedResponseError(f"Invalid type {raw_side!r} in trade record: {record!r}")

        return cls(
            id=to_int(require_field(record, "id", "trade"), "id", "trade"),
            date=to_datetime(require_field(record, "date", "trade"), "date", "trade"),
            price=to_decimal(require_field(record, "price", "trade"), "price", "trade"),
            amount=to_decimal(require_field(record, "amount", "trade"), "amount", "trade"),
            side=side,
        )


# ============================================
# Snapshot Records
# ============================================

class Ticker(BaseModel):
    """
    Market summary snapshot. A new instance is returned on every fetch.

    Raw Format (the "return" object of the ticker endpoint):
        {"buy": {"value": "13.1"}, "sell": {"value": "13.2"}, "high": {"value": "14"},
         "low": {"value": "12.9"}, "last": {"value": "13.15"}, "vol": {"value": "4211.5"}}

    Attributes:
        price: Last traded price
        volume: Traded volume in BTC
    """

    model_config = ConfigDict(frozen=True)

    buy: Decimal
    sell: Decimal
    high: Decimal
    low: Decimal
    price: Decimal
    volume: Decimal

    @classmethod
    def from_raw(cls, payload: Mapping[str, Any]) -> "Ticker":
        def value(key: str) -> Decimal:
            entry = require_field(payload, key, "ticker")
            return to_decimal(require_field(entry, "value", f"ticker {key}"), key, "ticker")

        return cls(
            buy=value("buy"),
            sell=value("sell"),
            high=value("high"),
            low=value("low"),
            price=value("last"),
            volume=value("vol"),
        )


class MinAsk(BaseModel):
    """Lowest priced ask in the current book"""

    model_config = ConfigDict(frozen=True)

    price: Decimal
    amount: Decimal


class MaxBid(BaseModel):
    """Highest priced bid in the current book"""

    model_config = ConfigDict(frozen=True)

    price: Decimal
    amount: Decimal


class Balance(BaseModel):
    """Funds held in one currency"""

    model_config = ConfigDict(frozen=True)

    currency: str
    amount: Decimal


# ============================================
# Collections
# ============================================

class Offers(BaseModel):
    """
    Both sides of the order book, fetched together.

    Attributes:
        asks: Sorted by price ascending (best ask first)
        bids: Sorted by price descending (best bid first)
    """

    model_config = ConfigDict(frozen=True)

    asks: List[Ask] = Field(default_factory=list)
    bids: List[Bid] = Field(default_factory=list)


class Orders(BaseModel):
    """
    The account's open orders split by side, each sorted by date ascending.
    """

    model_config = ConfigDict(frozen=True)

    buys: List[Buy] = Field(default_factory=list)
    sells: List[Sell] = Field(default_factory=list)
