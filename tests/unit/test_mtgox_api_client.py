"""
Unit Tests for Mt. Gox API Client

These tests verify that the MtGoxAPIClient:
- Calls the right endpoints with the right parameters
- Normalizes Mt. Gox responses to our schemas
- Sends credentials with authenticated commands
- Raises on HTTP and exchange errors without retrying

Run with:
    pytest tests/unit/test_mtgox_api_client.py -v
"""

import asyncio

import aiohttp
import pytest
import pytest_asyncio
from decimal import Decimal

from exchanges.mtgox.api_client import MtGoxAPIClient
from core.config import Settings
from core.schemas import Ask, Bid, Buy, Orders, Sell, Ticker, Trade


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def client_settings():
    """Settings with credentials and the default USD market"""
    return Settings(_env_file=None, username="alice", password="secret", currency="USD")


@pytest_asyncio.fixture
async def api_client(client_settings):
    """Create a MtGoxAPIClient instance for testing"""
    async with MtGoxAPIClient(client_settings) as client:
        yield client


DEPTH = {
    "asks": [["13.5", "1"], ["12.9", "2"]],
    "bids": [["12.1", "3"], ["12.5", "4"]],
}

ORDERS = {
    "orders": [
        {"oid": "s1", "date": 300, "amount": "1", "price": "15", "type": 1},
        {"oid": "b1", "date": 200, "amount": "2", "price": "12", "type": 2},
        {"oid": "x1", "date": 100, "amount": "3", "price": "10", "type": 3},
    ]
}


# ============================================
# Tests for Market Data
# ============================================

class TestGetTicker:
    """Tests for get_ticker method"""

    @pytest.mark.asyncio
    async def test_get_ticker_returns_ticker(self, api_client, monkeypatch):
        """Verify get_ticker unwraps "return" and builds a Ticker"""
        called = {}
        mock_response = {
            "result": "success",
            "return": {
                "buy": {"value": "13.1"},
                "sell": {"value": "13.2"},
                "high": {"value": "14"},
                "low": {"value": "12.9"},
                "last": {"value": "13.15"},
                "vol": {"value": "4211.5"},
            },
        }

        async def mock_get(path, params=None):
            called["path"] = path
            return mock_response

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_ticker()

        assert called["path"] == "/api/1/BTCUSD/public/ticker"
        assert isinstance(result, Ticker)
        assert result.price == Decimal("13.15")
        assert result.volume == Decimal("4211.5")

    @pytest.mark.asyncio
    async def test_each_fetch_returns_a_new_snapshot(self, api_client, monkeypatch):
        """Verify tickers are independent values, not a shared instance"""
        values = iter(["1", "2"])

        async def mock_get(path, params=None):
            value = {"value": next(values)}
            return {"return": {k: value for k in ("buy", "sell", "high", "low", "last", "vol")}}

        monkeypatch.setattr(api_client, "_get", mock_get)

        first = await api_client.get_ticker()
        second = await api_client.get_ticker()

        assert first.price == Decimal("1")
        assert second.price == Decimal("2")


class TestGetOffers:
    """Tests for order book methods"""

    @pytest.mark.asyncio
    async def test_get_offers_requests_raw_depth(self, api_client, monkeypatch):
        """Verify the depth endpoint for the configured currency is called"""
        called = {}

        async def mock_get(path, params=None):
            called["path"] = path
            called["params"] = params
            return DEPTH

        monkeypatch.setattr(api_client, "_get", mock_get)

        offers = await api_client.get_offers()

        assert called["path"] == "/api/1/BTCUSD/public/depth"
        assert "raw" in called["params"]
        assert [ask.price for ask in offers.asks] == [Decimal("12.9"), Decimal("13.5")]
        assert [bid.price for bid in offers.bids] == [Decimal("12.5"), Decimal("12.1")]

    @pytest.mark.asyncio
    async def test_asks_and_bids(self, api_client, monkeypatch):
        async def mock_get(path, params=None):
            return DEPTH

        monkeypatch.setattr(api_client, "_get", mock_get)

        asks = await api_client.get_asks()
        bids = await api_client.get_bids()

        assert all(isinstance(ask, Ask) for ask in asks)
        assert all(isinstance(bid, Bid) for bid in bids)

    @pytest.mark.asyncio
    async def test_min_ask_and_max_bid(self, api_client, monkeypatch):
        async def mock_get(path, params=None):
            return DEPTH

        monkeypatch.setattr(api_client, "_get", mock_get)

        min_ask = await api_client.get_min_ask()
        max_bid = await api_client.get_max_bid()

        assert min_ask.price == Decimal("12.9")
        assert min_ask.amount == Decimal("2")
        assert max_bid.price == Decimal("12.5")
        assert max_bid.amount == Decimal("4")

    @pytest.mark.asyncio
    async def test_min_ask_on_empty_book_is_none(self, api_client, monkeypatch):
        async def mock_get(path, params=None):
            return {"asks": [], "bids": []}

        monkeypatch.setattr(api_client, "_get", mock_get)

        assert await api_client.get_min_ask() is None
        assert await api_client.get_max_bid() is None

    @pytest.mark.asyncio
    async def test_currency_selects_market(self, monkeypatch):
        """Verify the quote currency is part of the endpoint path"""
        called = {}

        async def mock_get(path, params=None):
            called["path"] = path
            return DEPTH

        async with MtGoxAPIClient(Settings(_env_file=None, currency="eur")) as client:
            monkeypatch.setattr(client, "_get", mock_get)
            offers = await client.get_offers()

        assert called["path"] == "/api/1/BTCEUR/public/depth"
        assert offers.asks[0].price_currency == "EUR"


class TestGetTrades:
    """Tests for get_trades method"""

    RECORDS = [
        {"id": 12, "date": 1357000200, "price": "13.2", "amount": "1", "type": "ask"},
        {"id": 11, "date": 1357000100, "price": "13.1", "amount": "2", "type": "bid"},
    ]

    @pytest.mark.asyncio
    async def test_get_trades_returns_chronological_trades(self, api_client, monkeypatch):
        called = {}

        async def mock_get(path, params=None):
            called["path"] = path
            called["params"] = params
            return self.RECORDS

        monkeypatch.setattr(api_client, "_get", mock_get)

        trades = await api_client.get_trades()

        assert called["path"] == "/api/1/BTCUSD/public/trades"
        assert "since" not in called["params"]
        assert [trade.id for trade in trades] == [11, 12]
        assert all(isinstance(trade, Trade) for trade in trades)

    @pytest.mark.asyncio
    async def test_get_trades_since_trade_sends_its_id(self, api_client, monkeypatch):
        called = {}

        async def mock_get(path, params=None):
            called["params"] = params
            return self.RECORDS

        monkeypatch.setattr(api_client, "_get", mock_get)

        previous = Trade.from_raw(self.RECORDS[1])
        trades = await api_client.get_trades(previous)

        assert called["params"]["since"] == 11
        assert [trade.id for trade in trades] == [12]

    @pytest.mark.asyncio
    async def test_get_trades_rejects_invalid_since(self, api_client):
        with pytest.raises(TypeError, match="str"):
            await api_client.get_trades("yesterday")


# ============================================
# Tests for Account Commands
# ============================================

class TestAccount:
    """Tests for authenticated commands"""

    @pytest.mark.asyncio
    async def test_get_balance(self, api_client, monkeypatch):
        called = {}

        async def mock_post(path, data=None):
            called["path"] = path
            return {"btcs": "1.5", "usds": "100.25"}

        monkeypatch.setattr(api_client, "_post", mock_post)

        balances = await api_client.get_balance()

        assert called["path"] == "/code/getFunds.php"
        assert [(b.currency, b.amount) for b in balances] == [
            ("BTC", Decimal("1.5")),
            ("USD", Decimal("100.25")),
        ]

    @pytest.mark.asyncio
    async def test_get_orders_classifies(self, api_client, monkeypatch):
        async def mock_post(path, data=None):
            return ORDERS

        monkeypatch.setattr(api_client, "_post", mock_post)

        orders = await api_client.get_orders()
        buys = await api_client.get_buys()
        sells = await api_client.get_sells()

        assert isinstance(orders, Orders)
        assert [b.id for b in buys] == ["b1"]
        assert [s.id for s in sells] == ["s1"]

    @pytest.mark.asyncio
    async def test_buy_and_sell_send_amount_and_price(self, api_client, monkeypatch):
        calls = []

        async def mock_post(path, data=None):
            calls.append((path, data))
            return ORDERS

        monkeypatch.setattr(api_client, "_post", mock_post)

        await api_client.buy(Decimal("1.0"), Decimal("0.011"))
        await api_client.sell("2", "100")

        assert calls[0] == ("/code/buyBTC.php", {"amount": "1.0", "price": "0.011"})
        assert calls[1] == ("/code/sellBTC.php", {"amount": "2", "price": "100"})

    @pytest.mark.asyncio
    async def test_cancel_with_order(self, api_client, monkeypatch):
        calls = []

        async def mock_post(path, data=None):
            calls.append((path, data))
            return {"orders": []}

        monkeypatch.setattr(api_client, "_post", mock_post)

        sell = Sell.from_raw(ORDERS["orders"][0], currency="USD")
        orders = await api_client.cancel(sell)

        assert calls[0] == ("/code/cancelOrder.php", {"oid": "s1", "type": "1"})
        assert orders.buys == [] and orders.sells == []

    @pytest.mark.asyncio
    async def test_cancel_with_order_id(self, api_client, monkeypatch):
        calls = []

        async def mock_post(path, data=None):
            calls.append((path, data))
            return ORDERS

        monkeypatch.setattr(api_client, "_post", mock_post)

        await api_client.cancel("b1")

        assert calls[0] == ("/code/cancelOrder.php", {"oid": "b1"})

    @pytest.mark.asyncio
    async def test_cancel_rejects_other_arguments(self, api_client):
        with pytest.raises(TypeError, match="int"):
            await api_client.cancel(1234)

    @pytest.mark.asyncio
    async def test_withdraw(self, api_client, monkeypatch):
        called = {}

        async def mock_post(path, data=None):
            called["path"] = path
            called["data"] = data
            return {"btcs": "0.5", "usds": "100.25"}

        monkeypatch.setattr(api_client, "_post", mock_post)

        balances = await api_client.withdraw("1.0", "1KxSo9bGBfPVFEtWNLpnUK1bfLNNT4q31L")

        assert called["path"] == "/code/withdraw.php"
        assert called["data"] == {
            "group1": "BTC",
            "amount": "1.0",
            "btca": "1KxSo9bGBfPVFEtWNLpnUK1bfLNNT4q31L",
        }
        assert balances[0].amount == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_post_merges_credentials(self, api_client, monkeypatch):
        """Verify name/pass are sent alongside command fields"""
        called = {}

        async def mock_request(method, path, params=None, data=None):
            called["method"] = method
            called["data"] = data
            return ORDERS

        monkeypatch.setattr(api_client, "_request", mock_request)

        await api_client.buy("1", "2")

        assert called["method"] == "POST"
        assert called["data"] == {"name": "alice", "pass": "secret", "amount": "1", "price": "2"}

    @pytest.mark.asyncio
    async def test_post_requires_credentials(self):
        async with MtGoxAPIClient(Settings(_env_file=None, username="", password="")) as client:
            with pytest.raises(RuntimeError, match="Credentials required"):
                await client.get_balance()


# ============================================
# Tests for Context Manager
# ============================================

class TestContextManager:
    """Tests for async context manager functionality"""

    @pytest.mark.asyncio
    async def test_context_manager_creates_session(self, client_settings):
        client = MtGoxAPIClient(client_settings)
        assert client.session is None

        async with client as c:
            assert c.session is not None

    @pytest.mark.asyncio
    async def test_request_raises_if_not_used(self, client_settings):
        client = MtGoxAPIClient(client_settings)

        with pytest.raises(RuntimeError, match="not initialized"):
            await client._get("/test")


# ============================================
# Tests for Error Handling
# ============================================

class MockResponse:
    def __init__(self, status, json_data=None):
        self.status = status
        self._json_data = json_data

    async def json(self, content_type="application/json"):
        return self._json_data

    async def text(self):
        return "Internal error"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


class TestErrorHandling:
    """Tests for transport error handling"""

    @pytest.mark.asyncio
    async def test_success_returns_json(self, api_client):
        def mock_request(method, url, params=None, data=None, timeout=None):
            return MockResponse(200, {"asks": [], "bids": []})

        api_client.session.request = mock_request

        assert await api_client._get("/test") == {"asks": [], "bids": []}

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self, api_client):
        """Verify a failed request raises after a single attempt"""
        call_count = 0

        def mock_request(method, url, params=None, data=None, timeout=None):
            nonlocal call_count
            call_count += 1
            return MockResponse(503)

        api_client.session.request = mock_request

        with pytest.raises(RuntimeError, match="HTTP 503"):
            await api_client._get("/test")

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_exchange_error_body_is_raised(self, api_client):
        def mock_request(method, url, params=None, data=None, timeout=None):
            return MockResponse(200, {"error": "Must be logged in"})

        api_client.session.request = mock_request

        with pytest.raises(RuntimeError, match="Must be logged in"):
            await api_client._post("/code/getFunds.php")

    @pytest.mark.asyncio
    async def test_timeout_is_raised_as_runtime_error(self, api_client):
        def mock_request(method, url, params=None, data=None, timeout=None):
            raise asyncio.TimeoutError()

        api_client.session.request = mock_request

        with pytest.raises(RuntimeError, match="timed out"):
            await api_client._get("/api/1/BTCUSD/public/ticker")

    @pytest.mark.asyncio
    async def test_connection_error_is_raised_as_runtime_error(self, api_client):
        def mock_request(method, url, params=None, data=None, timeout=None):
            raise aiohttp.ClientConnectionError("Connection refused")

        api_client.session.request = mock_request

        with pytest.raises(RuntimeError, match="failed: Connection refused") as exc_info:
            await api_client._get("/api/1/BTCUSD/public/ticker")

        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_invalid_json_is_raised_as_runtime_error(self, api_client):
        """Verify an undecodable body is reported, not returned"""

        class BadJSONResponse(MockResponse):
            async def json(self, content_type="application/json"):
                raise ValueError("Expecting value: line 1 column 1 (char 0)")

        def mock_request(method, url, params=None, data=None, timeout=None):
            return BadJSONResponse(200)

        api_client.session.request = mock_request

        with pytest.raises(RuntimeError, match="Invalid JSON response"):
            await api_client._post("/code/getFunds.php")
