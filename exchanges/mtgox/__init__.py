"""
Mt. Gox Exchange Connector

Client for the Mt. Gox BTC trading API: ticker, order book and trade history
from the public endpoints, plus balances, open orders, order placement,
cancellation and withdrawals for an authenticated account.

Usage:
    from exchanges.mtgox import MtGoxAPIClient

    async with MtGoxAPIClient() as client:
        best = await client.get_min_ask()
"""

from .api_client import MtGoxAPIClient

__all__ = ["MtGoxAPIClient"]
