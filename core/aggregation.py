"""
Order Book Aggregation

Pure functions that turn raw Mt. Gox payloads into the sorted, typed
collections defined in core.schemas:

    - build_offers: depth payload -> Offers (asks ascending, bids descending)
    - best_ask / best_bid: first entry of a sorted side, or None when empty
    - normalize_trades: trade records -> trades in chronological order
    - classify_orders: mixed order records -> Orders split into buys and sells
    - assemble_balances: funds payload -> [BTC balance, quote currency balance]
    - parse_ticker: ticker payload -> Ticker

Every function takes the configuration it needs as an explicit MarketConfig
argument and has no side effects, so it is safe to call from any thread or task.
All sorts are stable: entries with equal keys keep their input order.
"""

from typing import Any, Iterable, List, Literal, Mapping, Optional, Sequence, Union
from numbers import Integral
from pydantic import BaseModel, ConfigDict, Field

from core.config import MarketConfig
from core.schemas import (
    Ask,
    Balance,
    Bid,
    Buy,
    MaxBid,
    MinAsk,
    Offers,
    Orders,
    Sell,
    Ticker,
    Trade,
)
from core.utils.parsing import require_field, to_decimal, MalformedResponseError


# Order type codes used by the account endpoints
ORDER_TYPES = {"sell": 1, "buy": 2}


# ============================================
# Order Book
# ============================================

def build_offers(depth: Mapping[str, Any], config: MarketConfig) -> Offers:
    """
    Build both sides of the order book from a depth payload.

    Args:
        depth: {"asks": [[price, amount], ...], "bids": [[price, amount], ...]}
        config: Market configuration (quote currency is stamped on every offer)

    Returns:
        Offers with asks sorted by price ascending and bids by price descending

    Raises:
        MalformedResponseError: If a side is missing or an entry cannot be parsed
    """
    raw_asks = _side(depth, "asks")
    raw_bids = _side(depth, "bids")

    asks = sorted(
        (Ask.from_raw(entry, config.currency) for entry in raw_asks),
        key=lambda ask: ask.price
    )
    # reverse=True keeps equal prices in input order
    bids = sorted(
        (Bid.from_raw(entry, config.currency) for entry in raw_bids),
        key=lambda bid: bid.price,
        reverse=True
    )

    return Offers(asks=asks, bids=bids)


def _side(depth: Mapping[str, Any], key: str) -> Sequence[Any]:
    entries = require_field(depth, key, "depth")
    if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, Sequence):
        raise MalformedResponseError(
            f"Expected '{key}' in depth record to be a list, got {type(entries).__name__}"
        )
    return entries


def best_ask(asks: Sequence[Ask]) -> Optional[MinAsk]:
    """
    Lowest priced ask, or None if there are no asks.

    Args:
        asks: Asks already sorted by price ascending (as returned by build_offers)
    """
    if not asks:
        return None
    return MinAsk(price=asks[0].price, amount=asks[0].amount)


def best_bid(bids: Sequence[Bid]) -> Optional[MaxBid]:
    """
    Highest priced bid, or None if there are no bids.

    Args:
        bids: Bids already sorted by price descending (as returned by build_offers)
    """
    if not bids:
        return None
    return MaxBid(price=bids[0].price, amount=bids[0].amount)


# ============================================
# Trade History
# ============================================

class AllTrades(BaseModel):
    """Fetch the full trade history"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["all"] = "all"


class SinceId(BaseModel):
    """Fetch trades after a numeric trade id"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["since_id"] = "since_id"
    id: int = Field(..., ge=0)


class SinceTrade(BaseModel):
    """Fetch trades after a previously returned trade"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["since_trade"] = "since_trade"
    trade: Trade


TradesSince = Union[AllTrades, SinceId, SinceTrade]


def trades_since(arg: Any = None) -> TradesSince:
    """
    Resolve the caller's "since" argument into an explicit TradesSince variant.

    Accepted shapes:
        - None: all trades
        - Trade: trades after that trade's id
        - int, or a float with no fractional part (4.0): trades after that id
        - an AllTrades / SinceId / SinceTrade value: returned unchanged

    Raises:
        TypeError: For any other shape (including bool and fractional floats)

    Example:
        >>> trades_since(1234)
        SinceId(kind='since_id', id=1234)
    """
    if arg is None:
        return AllTrades()
    if isinstance(arg, (AllTrades, SinceId, SinceTrade)):
        return arg
    if isinstance(arg, Trade):
        return SinceTrade(trade=arg)
    if isinstance(arg, Integral) and not isinstance(arg, bool):
        return SinceId(id=int(arg))
    if isinstance(arg, float) and arg.is_integer():
        return SinceId(id=int(arg))
    raise TypeError(
        f"Invalid argument for trades since: {type(arg).__name__} "
        f"(expected None, Trade or integral trade id)"
    )


def since_cursor(since: TradesSince) -> Optional[int]:
    """Trade id after which trades are wanted, or None for all trades"""
    if isinstance(since, SinceTrade):
        return since.trade.id
    if isinstance(since, SinceId):
        return since.id
    return None


def normalize_trades(records: Iterable[Mapping[str, Any]], since: TradesSince = AllTrades()) -> List[Trade]:
    """
    Convert raw trade records into trades sorted by date ascending.

    Args:
        records: Raw trade records in any order
        since: Keep only trades with an id greater than this cursor

    Returns:
        List of Trade objects, oldest first

    Raises:
        MalformedResponseError: If a record is missing a field or has a bad value
    """
    cursor = since_cursor(since)
    trades = [Trade.from_raw(record) for record in records]
    if cursor is not None:
        trades = [trade for trade in trades if trade.id > cursor]
    return sorted(trades, key=lambda trade: trade.date)


# ============================================
# Account Orders
# ============================================

def classify_orders(records: Iterable[Mapping[str, Any]], config: MarketConfig) -> Orders:
    """
    Split the account's raw orders into buys and sells.

    Records are sorted by date ascending first, then dispatched on their
    numeric type code (1 = sell, 2 = buy). Records with any other type code,
    or with no type at all, are dropped without failing the batch.

    Args:
        records: Raw order records ({"oid", "date", "amount", "price", "type"})
        config: Market configuration (orders are priced in the quote currency)

    Returns:
        Orders with date-ascending buys and sells

    Raises:
        MalformedResponseError: If a buy or sell record cannot be parsed
    """
    buys: List[Buy] = []
    sells: List[Sell] = []

    for record in sorted(records, key=_order_date):
        order_type = record.get("type")
        if order_type == ORDER_TYPES["sell"]:
            sells.append(Sell.from_raw(record, config.currency))
        elif order_type == ORDER_TYPES["buy"]:
            buys.append(Buy.from_raw(record, config.currency))

    return Orders(buys=buys, sells=sells)


def _order_date(record: Mapping[str, Any]) -> int:
    date = require_field(record, "date", "order")
    try:
        return int(date)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid date {date!r} in order record: {record!r}") from e


# ============================================
# Balances & Ticker
# ============================================

def assemble_balances(funds: Mapping[str, Any], config: MarketConfig) -> List[Balance]:
    """
    Build the BTC and quote currency balances from a funds payload.

    The exchange names each amount field after the lower-cased currency code
    followed by "s" (btcs, usds, eurs, ...).

    Example:
        >>> assemble_balances({"btcs": "1.5", "usds": "100.25"}, MarketConfig(currency="USD"))
        [Balance(currency='BTC', amount=Decimal('1.5')), Balance(currency='USD', amount=Decimal('100.25'))]
    """
    quote_key = config.currency.lower() + "s"
    return [
        Balance(currency="BTC", amount=to_decimal(require_field(funds, "btcs", "funds"), "btcs", "funds")),
        Balance(
            currency=config.currency,
            amount=to_decimal(require_field(funds, quote_key, "funds"), quote_key, "funds")
        ),
    ]


def parse_ticker(payload: Mapping[str, Any]) -> Ticker:
    """Build a fresh Ticker from the ticker endpoint's "return" object"""
    return Ticker.from_raw(payload)
