"""
Core Package

Contains the exchange-agnostic core logic including:
- Schemas: Pydantic models for normalized entities (Ask, Bid, Order, Trade, Ticker, Balance, ...)
- Aggregation: Pure functions that sort, classify and assemble raw exchange payloads
- Config: Settings loaded from the environment and the immutable MarketConfig snapshot

The aggregation layer never performs network calls; it receives raw payloads
from the exchange connectors and returns typed values.
"""
