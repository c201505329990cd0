"""
Exchange Connectors Package

Each exchange has its own subfolder with:
- api_client.py: REST API logic (transport, authentication, endpoint paths)

Connectors fetch raw payloads and hand them to core.aggregation for normalization.
"""
