"""
Test Suite

Contains unit tests for the Mt. Gox client.

Structure:
- tests/unit/: Tests for individual components (schemas, aggregation, config, API client)

Uses pytest with pytest-asyncio for testing async functionality.
"""
