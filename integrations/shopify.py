"""
Shopify Admin GraphQL integration.

Sends queries to a shop's Admin API and resolves admin tokens
configured in the environment.
"""

import os
from typing import Any, Optional
import requests
import structlog

from config import settings
from exceptions import ShopifyAPIError
from utils.text_utils import normalize_store_domain, normalize_text

logger = structlog.get_logger(__name__)


def scoped_token_env_name(shop: str) -> str:
    """
    Environment variable holding a token for one shop.

    - "my-store.myshopify.com" → "SHOPIFY_ADMIN_TOKEN_MY_STORE_MYSHOPIFY_COM"
    """
    normalized = normalize_store_domain(shop) or ""
    return "SHOPIFY_ADMIN_TOKEN_" + normalized.replace(".", "_").replace("-", "_").upper()


def get_env_admin_token(shop: str) -> str:
    """
    Get the admin token for a shop from the environment.

    A shop-scoped variable wins. The global token only applies when no
    default shop is configured or the default shop is this shop.

    Returns:
        Token string, or "" when none applies
    """
    normalized_shop = normalize_store_domain(shop) or ""
    scoped = normalize_text(os.getenv(scoped_token_env_name(normalized_shop)))
    if scoped:
        return scoped

    global_token = normalize_text(settings.shopify_admin_access_token)
    if not global_token:
        return ""

    configured_shop = normalize_store_domain(settings.shopify_shop_domain) or ""
    if configured_shop and normalized_shop and configured_shop != normalized_shop:
        logger.debug(
            "global_token_not_for_shop",
            shop=normalized_shop,
            configured_shop=configured_shop
        )
        return ""
    return global_token


def graphql_url(shop: str, api_version: Optional[str] = None) -> str:
    return f"https://{shop}/admin/api/{api_version or settings.shopify_api_version}/graphql.json"


def run_graphql(
    shop: str,
    token: str,
    query: str,
    variables: Optional[dict[str, Any]] = None,
    api_version: Optional[str] = None,
    timeout: Optional[float] = None
) -> dict:
    """
    Execute a GraphQL query against the Admin API.

    Args:
        shop: Normalized shop domain
        token: Admin API access token
        query: GraphQL document
        variables: Query variables
        api_version: Admin API version (defaults to settings)
        timeout: Request timeout in seconds (defaults to settings)

    Returns:
        The `data` object of the response (may be empty)

    Raises:
        ShopifyAPIError: On transport failure, non-2xx status or GraphQL errors
    """
    url = graphql_url(shop, api_version)
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Access-Token": token,
    }
    payload = {"query": query, "variables": variables or {}}

    try:
        response = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=timeout or settings.shopify_request_timeout_seconds
        )
    except requests.exceptions.RequestException as e:
        logger.error("shopify_request_failed", shop=shop, error=str(e))
        raise ShopifyAPIError(f"Shopify request failed: {e}")

    try:
        body = response.json()
    except ValueError:
        body = {"raw": response.text}

    if not response.ok:
        errors = body.get("errors", body) if isinstance(body, dict) else body
        logger.error(
            "shopify_http_error",
            shop=shop,
            status=response.status_code,
            errors=str(errors)[:500]
        )
        raise ShopifyAPIError(
            f"Shopify returned HTTP {response.status_code}: {str(errors)[:500]}",
            status=response.status_code
        )

    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors:
        messages = "; ".join(
            normalize_text(err.get("message")) if isinstance(err, dict) else normalize_text(err)
            for err in errors
        )
        logger.error("shopify_graphql_error", shop=shop, errors=messages[:500])
        raise ShopifyAPIError(f"Shopify GraphQL error: {messages}", status=400)

    data = body.get("data") if isinstance(body, dict) else None
    return data or {}
