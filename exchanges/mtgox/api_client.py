"""
Mt. Gox REST API Client

This module provides an async HTTP client for the Mt. Gox trading API.
It handles:
- HTTP requests (public GET endpoints and authenticated POST commands)
- Error handling and logging
- Data normalization to our schemas via core.aggregation

Endpoints:
    Public:
        - GET /api/1/BTC<CUR>/public/ticker
        - GET /api/1/BTC<CUR>/public/depth?raw
        - GET /api/1/BTC<CUR>/public/trades?raw
    Authenticated (name/pass form fields):
        - POST /code/getFunds.php, /code/getOrders.php
        - POST /code/buyBTC.php, /code/sellBTC.php, /code/cancelOrder.php
        - POST /code/withdraw.php

Requests are made exactly once: there is no retry, caching or rate limiting
at this layer.

Usage:
    async with MtGoxAPIClient() as client:
        ticker = await client.get_ticker()
        offers = await client.get_offers()
"""

import aiohttp
import asyncio
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from core.aggregation import (
    ORDER_TYPES,
    assemble_balances,
    best_ask,
    best_bid,
    build_offers,
    classify_orders,
    normalize_trades,
    parse_ticker,
    since_cursor,
    trades_since,
)
from core.config import Settings
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import (
    Ask,
    Balance,
    Bid,
    Buy,
    MaxBid,
    MinAsk,
    Offers,
    Order,
    Orders,
    Sell,
    Ticker,
    Trade,
)
from core.utils.parsing import require_field


class MtGoxAPIClient:
    """
    Async HTTP client for the Mt. Gox API

    All methods return normalized data using our Pydantic schemas. The market
    configuration (commission, quote currency) is snapshotted once at
    construction and passed explicitly to the aggregation functions.

    Attributes:
        settings: Client settings (base URL, credentials, currency, commission)
        market: Immutable MarketConfig snapshot used for normalization
        session: aiohttp ClientSession for HTTP requests
        logger: Logger instance for debugging

    Example:
        >>> async with MtGoxAPIClient() as client:
        ...     asks = await client.get_asks()
        ...     print(f"Best ask: {asks[0].price}")

    Notes:
        - Uses context manager for automatic session cleanup
        - Public endpoints need no credentials
        - Account endpoints raise RuntimeError when credentials are missing
    """

    EXCHANGE = "mtgox"

    def __init__(self, config: Optional[Settings] = None):
        """
        Initialize the Mt. Gox API client.

        Args:
            config: Client settings (defaults to the global settings)
        """
        if config is None:
            from core.config import settings
            config = settings

        self.settings = config
        self.market = config.market_config
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug("MtGoxAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.logger.debug("MtGoxAPIClient session closed")

    # ============================================
    # HTTP Request Handlers
    # ============================================

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Make a single request to the Mt. Gox API and decode the JSON body.

        Args:
            method: HTTP method ("GET" or "POST")
            path: API endpoint path (e.g., "/code/getFunds.php")
            params: Optional query parameters
            data: Optional form fields

        Returns:
            Decoded JSON response

        Raises:
            RuntimeError: If the session is not open, the request fails or
                times out, the status is not 200, or the body carries an
                "error" field
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.settings.base_url}{path}"
        log_api_request(self.EXCHANGE, path, params or data)
        started = time.monotonic()

        try:
            async with self.session.request(
                method,
                url,
                params=params,
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout)
            ) as resp:
                log_api_response(self.EXCHANGE, path, resp.status, time.monotonic() - started)

                if resp.status != 200:
                    text = await resp.text()
                    self.logger.error(f"HTTP {resp.status} on {path}: {text}")
                    raise RuntimeError(f"Request to {url} failed with HTTP {resp.status}")

                # Mt. Gox does not always send application/json
                body = await resp.json(content_type=None)

        except asyncio.TimeoutError as e:
            self.logger.error(f"Timeout on {path}")
            raise RuntimeError(f"Request to {url} timed out") from e

        except aiohttp.ClientError as e:
            self.logger.error(f"Request failed on {path}: {e}")
            raise RuntimeError(f"Request to {url} failed: {e}") from e

        except ValueError as e:
            self.logger.error(f"Invalid JSON on {path}: {e}")
            raise RuntimeError(f"Invalid JSON response from {url}") from e

        if isinstance(body, dict) and body.get("error"):
            self.logger.error(f"Mt. Gox error on {path}: {body['error']}")
            raise RuntimeError(f"Mt. Gox error on {path}: {body['error']}")

        return body

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """
        POST an authenticated command with the account credentials merged in.

        Raises:
            RuntimeError: If username or password is not configured
        """
        if not self.settings.has_credentials:
            raise RuntimeError(
                f"Credentials required for {path}. Set MTGOX_USERNAME and MTGOX_PASSWORD."
            )

        form = {"name": self.settings.username, "pass": self.settings.password}
        if data:
            form.update(data)
        return await self._request("POST", path, data=form)

    def _market_path(self, endpoint: str) -> str:
        return f"/api/1/BTC{self.market.currency}/public/{endpoint}"

    # ============================================
    # Market Data
    # ============================================

    async def get_ticker(self) -> Ticker:
        """
        Fetch the latest ticker data.

        Returns:
            A new Ticker snapshot

        Response Format:
            {"result": "success", "return": {"buy": {"value": "13.1", ...}, "last": {...}, ...}}
        """
        self.logger.info(f"Fetching ticker: BTC{self.market.currency}")
        data = await self._get(self._market_path("ticker"))
        ticker = parse_ticker(require_field(data, "return", "ticker response"))
        self.logger.info(f"Ticker BTC{self.market.currency}: last={ticker.price}")
        return ticker

    async def get_offers(self) -> Offers:
        """
        Fetch both bids and asks in one call.

        Returns:
            Offers with asks sorted by price ascending, bids by price descending

        Response Format:
            {"asks": [["13.2", "1.5"], ...], "bids": [["13.1", "0.4"], ...]}
        """
        self.logger.info(f"Fetching order book: BTC{self.market.currency}")
        data = await self._get(self._market_path("depth"), {"raw": ""})
        offers = build_offers(data, self.market)
        self.logger.info(f"Fetched {len(offers.asks)} asks and {len(offers.bids)} bids")
        return offers

    async def get_asks(self) -> List[Ask]:
        """Fetch open asks, sorted in price ascending order"""
        return (await self.get_offers()).asks

    async def get_bids(self) -> List[Bid]:
        """Fetch open bids, sorted in price descending order"""
        return (await self.get_offers()).bids

    async def get_min_ask(self) -> Optional[MinAsk]:
        """Fetch the lowest priced ask, or None if the book has no asks"""
        return best_ask(await self.get_asks())

    async def get_max_bid(self) -> Optional[MaxBid]:
        """Fetch the highest priced bid, or None if the book has no bids"""
        return best_bid(await self.get_bids())

    async def get_trades(self, since: Any = None) -> List[Trade]:
        """
        Fetch recent trades.

        Args:
            since: Only trades after this point. May be None (all trades),
                a Trade, an int trade id, or a TradesSince value.

        Returns:
            List of Trade objects in chronological order

        Raises:
            TypeError: If since has any other type
        """
        resolved = trades_since(since)
        cursor = since_cursor(resolved)
        params = {"raw": ""}
        if cursor is not None:
            params["since"] = cursor

        self.logger.info(f"Fetching trades: BTC{self.market.currency} (since={cursor})")
        data = await self._get(self._market_path("trades"), params)
        trades = normalize_trades(data, resolved)
        self.logger.info(f"Fetched {len(trades)} trades")
        return trades

    # ============================================
    # Account
    # ============================================

    async def get_balance(self) -> List[Balance]:
        """Fetch the BTC and quote currency balances"""
        self.logger.info("Fetching balance")
        return assemble_balances(await self._post("/code/getFunds.php"), self.market)

    async def get_orders(self) -> Orders:
        """Fetch open orders, both buys and sells"""
        self.logger.info("Fetching open orders")
        return await self._post_orders("/code/getOrders.php")

    async def get_buys(self) -> List[Buy]:
        """Fetch open buys, sorted by date"""
        return (await self.get_orders()).buys

    async def get_sells(self) -> List[Sell]:
        """Fetch open sells, sorted by date"""
        return (await self.get_orders()).sells

    async def buy(self, amount: Union[Decimal, float, str], price: Union[Decimal, float, str]) -> Orders:
        """
        Place a limit order to buy BTC.

        Args:
            amount: Number of bitcoins to purchase
            price: Bid price in the quote currency

        Returns:
            The account's open orders after placing this one

        Example:
            >>> await client.buy("1.0", "0.011")
        """
        self.logger.info(f"Placing buy: {amount} BTC @ {price} {self.market.currency}")
        return await self._post_orders("/code/buyBTC.php", {"amount": str(amount), "price": str(price)})

    async def sell(self, amount: Union[Decimal, float, str], price: Union[Decimal, float, str]) -> Orders:
        """
        Place a limit order to sell BTC.

        Returns:
            The account's open orders after placing this one
        """
        self.logger.info(f"Placing sell: {amount} BTC @ {price} {self.market.currency}")
        return await self._post_orders("/code/sellBTC.php", {"amount": str(amount), "price": str(price)})

    async def cancel(self, order: Union[Order, str]) -> Orders:
        """
        Cancel an open order.

        Args:
            order: An Order (Buy or Sell) or an order id string

        Returns:
            The account's open orders after the cancellation

        Raises:
            TypeError: If order is neither an Order nor a string
        """
        if isinstance(order, Order):
            form = {"oid": order.id}
            if isinstance(order, Sell):
                form["type"] = str(ORDER_TYPES["sell"])
            elif isinstance(order, Buy):
                form["type"] = str(ORDER_TYPES["buy"])
        elif isinstance(order, str) and order:
            form = {"oid": order}
        else:
            raise TypeError(f"Could not find valid order id in {type(order).__name__}")

        self.logger.info(f"Cancelling order {form['oid']}")
        return await self._post_orders("/code/cancelOrder.php", form)

    async def withdraw(self, amount: Union[Decimal, float, str], address: str) -> List[Balance]:
        """
        Transfer bitcoins from the account to a bitcoin address.

        Args:
            amount: Number of bitcoins to withdraw
            address: Destination bitcoin address

        Returns:
            Balances after the withdrawal
        """
        self.logger.info(f"Withdrawing {amount} BTC to {address}")
        data = await self._post(
            "/code/withdraw.php",
            {"group1": "BTC", "amount": str(amount), "btca": address}
        )
        return assemble_balances(data, self.market)

    async def _post_orders(self, path: str, data: Optional[Dict[str, Any]] = None) -> Orders:
        response = await self._post(path, data)
        orders = classify_orders(require_field(response, "orders", "orders response"), self.market)
        self.logger.info(f"Open orders: {len(orders.buys)} buys, {len(orders.sells)} sells")
        return orders
