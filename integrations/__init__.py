"""
Outbound HTTP integrations (Shopify Admin API, catalog snapshot provider).
"""
