import json
import logging
from typing import Any, Dict, Optional
import httpx
from app.core.config import settings
from app.core.errors import (
    CatalogMalformedResponseError,
    CatalogMissingPayloadError,
    CatalogResponseStatusError,
    CatalogTransportError,
    CatalogUserError,
)

logger = logging.getLogger(__name__)

PRODUCT_GID_PREFIX = "gid://shopify/Product/"


def to_product_gid(product_id: Any) -> str:
    """Accept a numeric product id or a GID and return the GID form."""
    value = str(product_id).strip()
    if value.startswith("gid://"):
        return value
    return f"{PRODUCT_GID_PREFIX}{value}"


class ShopifyClient:
    def __init__(
        self,
        shop_domain: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop_domain = shop_domain or settings.SHOPIFY_SHOP_DOMAIN
        self.access_token = access_token or settings.SHOPIFY_ADMIN_ACCESS_TOKEN
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.timeout = timeout if timeout is not None else settings.SHOPIFY_REQUEST_TIMEOUT
        self.transport = transport

    @property
    def url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run a GraphQL Admin API request and return its ``data`` object.

        Raises a ``CatalogError`` subclass for transport failures, non-2xx
        statuses, unparsable bodies, top-level GraphQL errors and responses
        without ``data``. Nothing is retried here.
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"Shopify request timed out after {self.timeout}s")
            raise CatalogTransportError("Catalog platform request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Shopify transport error: {e}")
            raise CatalogTransportError(details=str(e)) from e

        if not response.is_success:
            logger.error(f"Shopify API error {response.status_code}: {response.text[:500]}")
            raise CatalogResponseStatusError(response.status_code, details=response.text[:500])

        try:
            body = json.loads(response.text)
        except ValueError as e:
            logger.error(f"Shopify response is not JSON: {e}")
            raise CatalogMalformedResponseError(details=response.text[:500]) from e

        if not isinstance(body, dict):
            raise CatalogMalformedResponseError(details=body)
        if body.get("errors"):
            errors = body["errors"]
            raise CatalogUserError.from_user_errors(errors if isinstance(errors, list) else [errors])
        data = body.get("data")
        if not isinstance(data, dict):
            raise CatalogMissingPayloadError(details=body)
        return data
